"""
메트릭 모듈 패키지

공통 데이터 타입:
- OutputStats: 출력(싱크)별 인코딩 통계 컨테이너
"""

from dataclasses import dataclass, replace


@dataclass
class OutputStats:
    """
    출력 하나의 인코딩 통계입니다.

    필드:
        filename: 출력 파일 경로
        codec: 코덱 키 문자열
        state: 세션 상태 (idle | open | header | encoding | flushing | closed | failed)
        frames_delivered: 코디네이터가 채널에 전달한 프레임 수
        frames_read: 워커가 인코더에 넣은 프레임 수
        packets_written: 기록된 패킷 수
        bytes_written: 기록된 패킷 페이로드 총 바이트
        error_kind: 마지막 에러 종류 (없으면 빈 문자열)
        last_error: 마지막 에러 메시지 (없으면 빈 문자열)
        updated_at_ns: 마지막 갱신 시각 (time.time_ns)
    """
    filename: str
    codec: str = ""
    state: str = "idle"
    frames_delivered: int = 0
    frames_read: int = 0
    packets_written: int = 0
    bytes_written: int = 0
    error_kind: str = ""
    last_error: str = ""
    updated_at_ns: int = 0

    def copy(self) -> "OutputStats":
        return replace(self)
