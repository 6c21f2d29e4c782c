"""
프레임 소스 패키지

- gen_synthetic_video: 합성 테스트 패턴 프레임 생성기
"""

from src.source.synthetic import DEFAULT_FRAME_COUNT, gen_synthetic_video

__all__ = ["DEFAULT_FRAME_COUNT", "gen_synthetic_video"]
