"""
구조화 로깅 패키지

로깅 초기화와 출력별 로거 어댑터를 외부에서 임포트하기 위한 패키지 초기화입니다.
"""

from src.logging.structured_logger import (
    OutputLogger,
    get_session_id,
    output_logger,
    setup_logging,
)

__all__ = ["OutputLogger", "get_session_id", "output_logger", "setup_logging"]
