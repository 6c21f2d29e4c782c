"""
스케일러 패키지

- SwsAlgorithm: 리샘플링 알고리즘 상수
- SwsContext / new_sws_ctx: 해상도/포맷 변환 컨텍스트
"""

from src.scaler.sws import SwsAlgorithm, SwsContext, new_sws_ctx

__all__ = ["SwsAlgorithm", "SwsContext", "new_sws_ctx"]
