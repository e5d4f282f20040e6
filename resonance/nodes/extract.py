"""
Extract node: book text for the planner and episode writers
"""
from ..context import AppContext
from ..core.error_handler import ErrorHandler
from ..models.library import BookRecord
from ..services.text_service import TextService
from ..state import SeriesState
from ..utils import log_workflow_step_start, log_workflow_step_end


async def load_book_text(context: AppContext, book: BookRecord) -> tuple[str, bool]:
    """
    책 본문을 추출합니다. 실패하면 제목/저자만 담은 텍스트로 대신합니다.

    Returns:
        (텍스트, 추출 실패 여부)
    """
    try:
        text = await context.extractor.extract(book.file_url, book.file_type)
    except Exception as e:
        ErrorHandler.handle_warning(
            "extract",
            f"Extraction failed, using metadata only: {e}",
            exception=e,
        )
        return TextService.fallback_text(book.title, book.author), True

    context.text_cache[book.id] = text
    return text, False


async def extract_node(state: SeriesState, context: AppContext) -> dict:
    job_id = state["job_id"]
    book = state["book"]
    log_workflow_step_start("extract", run_id=job_id)
    print("\n[Extract] Starting...", flush=True)
    context.jobs.update(job_id, status="extracting", label="Extracting text...")
    try:
        text, failed = await load_book_text(context, book)
        if not failed:
            print(f"  ✓ Extracted {len(text):,} chars", flush=True)
        return {"book_text": text, "extraction_failed": failed}
    finally:
        log_workflow_step_end("extract", run_id=job_id)
