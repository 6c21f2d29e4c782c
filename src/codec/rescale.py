"""
타임스탬프 리스케일 모듈입니다.

역할:
- av_rescale_q(AV_ROUND_NEAR_INF)와 동일한 규칙으로 타임베이스 간 값 변환
- TS_NONE 센티널은 변환하지 않고 그대로 통과

사용 예시:
    >>> rescale_q(3, TimeBase(1, 25), TimeBase(1, 90000))
    10800
"""

from __future__ import annotations

from src.codec import TS_NONE, TimeBase


def rescale_q(value: int, src: TimeBase, dst: TimeBase) -> int:
    """
    value * src / dst 를 정수 연산으로 계산합니다.

    반올림은 가장 가까운 정수, 동률이면 0에서 먼 쪽(half away from zero)입니다.

    파라미터:
        value: 원본 타임베이스 단위의 타임스탬프
        src: 원본 타임베이스
        dst: 대상 타임베이스

    반환값:
        int: 대상 타임베이스 단위의 타임스탬프 (value가 TS_NONE이면 TS_NONE)
    """
    if value == TS_NONE:
        return TS_NONE
    if dst.num == 0:
        raise ValueError(f"0 타임베이스로는 변환할 수 없습니다: {dst}")

    numerator = value * src.num * dst.den
    denominator = src.den * dst.num

    # 분모 부호를 양수로 정규화
    if denominator < 0:
        numerator, denominator = -numerator, -denominator

    quotient, remainder = divmod(abs(numerator), denominator)
    if 2 * remainder >= denominator:
        quotient += 1

    return quotient if numerator >= 0 else -quotient
