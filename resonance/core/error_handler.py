"""
Error Handler for standardized error handling across nodes
"""
from typing import Optional, Dict, Any

from ..utils.logging import log_error, print_error, print_warning


BUSY_MESSAGE = "Service busy, try again shortly."
RATE_LIMIT_MESSAGE = "Rate limit reached, wait and retry."
BUSY_MESSAGE_SHORT = "Service busy."
RATE_LIMIT_MESSAGE_SHORT = "Rate limit reached."


def classify_generation_error(error: Any, fallback: str = "Generation failed.", short: bool = False) -> str:
    """
    업스트림 에러 메시지를 사용자용 문구로 바꿉니다.

    "503"/"overwhelmed" → 서비스 혼잡, "429"/"quota" → 요청 한도 초과.
    둘 다 해당되면 요청 한도 초과가 우선합니다.

    Args:
        error: 예외 또는 메시지 문자열
        fallback: 메시지가 비어 있을 때 사용할 문구
        short: 에피소드 단위 알림용 짧은 문구 사용 여부

    Returns:
        사용자에게 보여줄 메시지
    """
    message = str(error) if error is not None else ""
    if not message:
        message = fallback
    lowered = message.lower()
    if "429" in message or "quota" in lowered:
        return RATE_LIMIT_MESSAGE_SHORT if short else RATE_LIMIT_MESSAGE
    if "503" in message or "overwhelmed" in lowered:
        return BUSY_MESSAGE_SHORT if short else BUSY_MESSAGE
    return message


class ErrorHandler:
    """
    공통 에러 처리 로직을 통합한 클래스
    노드별 에러 포맷팅을 표준화
    """

    @staticmethod
    def handle_node_error(
        node_name: str,
        error: BaseException,
        episode_number: Optional[int] = None,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        노드에서 발생한 에러를 표준 형식으로 처리합니다.

        Args:
            node_name: 노드 이름 (예: "planner", "episodes")
            error: 발생한 예외
            episode_number: 에피소드 번호 (해당되는 경우)
            context: 추가 컨텍스트 정보

        Returns:
            표준화된 에러 정보 딕셔너리
        """
        error_info = {
            "node_name": node_name,
            "error_message": str(error),
            "error_type": type(error).__name__,
            "episode_number": episode_number,
            "user_message": classify_generation_error(error, short=episode_number is not None),
        }
        if context:
            error_info["context"] = context

        label = f"{node_name} failed" + (f" (episode {episode_number})" if episode_number else "")
        print_error(f"{label}: {error}", context=context or node_name, exception=error)
        return error_info

    @staticmethod
    def handle_warning(
        node_name: str,
        message: str,
        episode_number: Optional[int] = None,
        context: Optional[str] = None,
        exception: Optional[BaseException] = None,
    ) -> None:
        """
        경고 메시지를 표준 형식으로 처리합니다. 예외가 있으면 에러 로그에도 남깁니다.
        """
        full_message = message
        if episode_number:
            full_message = f"Episode {episode_number}: {message}"
        print_warning(full_message, context=context or node_name, exception=exception)
        if exception is not None:
            log_error(full_message, context=context or node_name, exception=exception)
