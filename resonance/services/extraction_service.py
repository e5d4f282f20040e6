"""
Extraction Service: plain text from EPUB/PDF books (local path or remote URL)
"""
import asyncio
import io
import os
import tempfile
import warnings
from pathlib import Path

import ebooklib
import pdfplumber
import requests
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from ebooklib import epub

from ..core.constants import (
    CHAPTER_TIMEOUT_SEC,
    DOCUMENT_OPEN_TIMEOUT_SEC,
    DOWNLOAD_TIMEOUT_SEC,
    EXTRACTION_TIMEOUT_SEC,
    MAX_EPUB_CHAPTERS,
    MAX_EXTRACTED_CHARS,
    MAX_PDF_PAGES,
    PAGE_TIMEOUT_SEC,
)
from ..core.errors import ExtractionError
from ..utils.logging import log_error

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

EMPTY_EPUB_PLACEHOLDER = "[Could not extract text, generating from metadata only]"


def _is_remote(file_url: str) -> bool:
    return file_url.startswith("http://") or file_url.startswith("https://")


def _download(file_url: str, timeout: float) -> bytes:
    response = requests.get(file_url, timeout=timeout)
    response.raise_for_status()
    return response.content


def _spine_items(book: epub.EpubBook) -> list:
    """spine(읽는 순서) 기준 문서 목록, spine이 비어 있으면 manifest 순서"""
    items = []
    for entry in getattr(book, "spine", []):
        item_id = entry[0] if isinstance(entry, tuple) else entry
        item = book.get_item_with_id(item_id)
        if item is not None and item.get_type() == ebooklib.ITEM_DOCUMENT:
            items.append(item)
    if not items:
        items = [it for it in book.get_items() if it.get_type() == ebooklib.ITEM_DOCUMENT]
    return items


def _html_to_text(html: bytes) -> str:
    soup = BeautifulSoup(html, "html.parser")
    body = soup.body or soup
    return body.get_text("\n").strip()


def _page_text(page) -> str:
    return page.extract_text(x_tolerance=2, y_tolerance=2) or ""


class TextExtractor:
    """
    EPUB/PDF 텍스트 추출기

    긴 책 전체를 읽지 않고 챕터/페이지를 일정 간격으로 샘플링합니다.
    챕터(페이지) 하나가 타임아웃되면 건너뛰고 계속 진행합니다.
    """

    def __init__(
        self,
        extraction_timeout: float = EXTRACTION_TIMEOUT_SEC,
        document_open_timeout: float = DOCUMENT_OPEN_TIMEOUT_SEC,
        chapter_timeout: float = CHAPTER_TIMEOUT_SEC,
        page_timeout: float = PAGE_TIMEOUT_SEC,
        max_chars: int = MAX_EXTRACTED_CHARS,
        max_chapters: int = MAX_EPUB_CHAPTERS,
        max_pages: int = MAX_PDF_PAGES,
    ):
        self.extraction_timeout = extraction_timeout
        self.document_open_timeout = document_open_timeout
        self.chapter_timeout = chapter_timeout
        self.page_timeout = page_timeout
        self.max_chars = max_chars
        self.max_chapters = max_chapters
        self.max_pages = max_pages

    @classmethod
    def from_settings(cls, settings) -> "TextExtractor":
        return cls(
            extraction_timeout=settings.extraction_timeout_seconds,
            document_open_timeout=settings.document_open_timeout_seconds,
            chapter_timeout=settings.chapter_timeout_seconds,
            page_timeout=settings.page_timeout_seconds,
            max_chars=settings.max_extracted_chars,
        )

    async def extract(self, file_url: str, file_type: str) -> str:
        """
        책 파일에서 텍스트를 추출합니다.

        Args:
            file_url: 로컬 경로 또는 http(s) URL
            file_type: "epub" 또는 "pdf"

        Returns:
            추출된 텍스트

        Raises:
            ExtractionError: 파일을 열 수 없거나 전체 타임아웃 초과
        """
        file_type = (file_type or "").lower()
        if file_type not in ("epub", "pdf"):
            raise ExtractionError(f"Unsupported file type: {file_type!r}")

        try:
            return await asyncio.wait_for(self._extract(file_url, file_type), timeout=self.extraction_timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionError(f"Text extraction timed out after {self.extraction_timeout:.0f}s") from e
        except ExtractionError:
            raise
        except Exception as e:
            log_error(f"Extraction failed for {file_url}: {e}", context="extraction", exception=e)
            raise ExtractionError(f"Could not read {file_type.upper()}: {e}") from e

    async def _load_bytes(self, file_url: str) -> bytes:
        if _is_remote(file_url):
            return await asyncio.to_thread(_download, file_url, DOWNLOAD_TIMEOUT_SEC)
        path = Path(file_url)
        if not path.exists():
            raise ExtractionError(f"File not found: {file_url}")
        return await asyncio.to_thread(path.read_bytes)

    async def _extract(self, file_url: str, file_type: str) -> str:
        data = await self._load_bytes(file_url)
        if file_type == "epub":
            return await self._extract_epub(data)
        return await self._extract_pdf(data)

    async def _extract_epub(self, data: bytes) -> str:
        book = await asyncio.wait_for(asyncio.to_thread(self._read_epub, data), timeout=self.document_open_timeout)
        items = _spine_items(book)
        step = max(1, len(items) // self.max_chapters)

        chunks: list[str] = []
        collected = 0
        for index in range(0, len(items), step)[: self.max_chapters]:
            if collected > self.max_chars:
                break
            item = items[index]
            try:
                text = await asyncio.wait_for(
                    asyncio.to_thread(_html_to_text, item.get_content()),
                    timeout=self.chapter_timeout,
                )
            except asyncio.TimeoutError:
                print(f"  ⚠ Skipped chapter {index + 1} (timeout)", flush=True)
                continue
            except (ValueError, UnicodeDecodeError) as e:
                print(f"  ⚠ Skipped chapter {index + 1} ({e})", flush=True)
                continue
            chunk = f"[Chapter {index + 1}]\n{text}\n\n"
            chunks.append(chunk)
            collected += len(chunk)

        return "".join(chunks) or EMPTY_EPUB_PLACEHOLDER

    @staticmethod
    def _read_epub(data: bytes) -> epub.EpubBook:
        # ebooklib은 파일 경로가 필요하므로 임시 파일에 씁니다
        fd, tmp_path = tempfile.mkstemp(suffix=".epub")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return epub.read_epub(tmp_path, options={"ignore_ncx": True})
        finally:
            os.unlink(tmp_path)

    async def _extract_pdf(self, data: bytes) -> str:
        pdf = await asyncio.wait_for(
            asyncio.to_thread(pdfplumber.open, io.BytesIO(data)),
            timeout=self.document_open_timeout,
        )
        try:
            pages = pdf.pages
            step = max(1, len(pages) // self.max_pages)

            chunks: list[str] = []
            collected = 0
            for index in range(0, len(pages), step)[: self.max_pages]:
                if collected > self.max_chars:
                    break
                try:
                    text = await asyncio.wait_for(
                        asyncio.to_thread(_page_text, pages[index]),
                        timeout=self.page_timeout,
                    )
                except asyncio.TimeoutError:
                    print(f"  ⚠ Skipped page {index + 1} (timeout)", flush=True)
                    continue
                chunk = f"[Page {index + 1}]\n{text}\n\n"
                chunks.append(chunk)
                collected += len(chunk)
            return "".join(chunks)
        finally:
            pdf.close()
