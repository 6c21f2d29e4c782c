"""
구조화 로깅 모듈 단위 테스트

검증 조건:
- JSON 포맷 로그에 session_id, level, module 필드 포함
- 출력 파일명(extra output)은 JSON 필드 / 텍스트 [output] 접두어로 기록
- RotatingFileHandler로 encode.log 파일 생성
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO

import pytest

from src.config.schema import AppConfig, SystemConfig
from src.logging.structured_logger import (
    LOG_FILENAME,
    OutputLogger,
    _JsonFormatter,
    _TextFormatter,
    get_session_id,
    output_logger,
    setup_logging,
)


# =========================================================================
# 픽스처 / 헬퍼
# =========================================================================

@pytest.fixture(autouse=True)
def reset_root_logger():
    """각 테스트 후 root logger 핸들러 초기화."""
    yield
    root = logging.getLogger()
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()


def _config(tmp_path, log_format="json", session_id="test-session-001", log_level="DEBUG") -> AppConfig:
    return AppConfig(system=SystemConfig(
        log_level=log_level,
        log_format=log_format,
        log_dir=str(tmp_path / "logs"),
        session_id=session_id,
    ))


def _emit(formatter: logging.Formatter, name: str, message: str, **kwargs) -> str:
    """전용 스트림 핸들러로 로그 한 줄을 캡처합니다."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    logger = logging.getLogger(name)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        logger.info(message, **kwargs)
    finally:
        logger.removeHandler(handler)
    return stream.getvalue().strip()


# =========================================================================
# setup_logging 테스트
# =========================================================================

class TestSetupLogging:
    def test_log_file_created(self, tmp_path):
        setup_logging(_config(tmp_path))
        assert (tmp_path / "logs" / LOG_FILENAME).exists()
        assert LOG_FILENAME == "encode.log"

    def test_session_id_argument_wins(self, tmp_path):
        setup_logging(_config(tmp_path), session_id="custom-sid")
        assert get_session_id() == "custom-sid"

    def test_session_id_from_config(self, tmp_path):
        setup_logging(_config(tmp_path))
        assert get_session_id() == "test-session-001"

    def test_session_id_auto_uuid_when_empty(self, tmp_path):
        setup_logging(_config(tmp_path, session_id=""))
        sid = get_session_id()
        assert len(sid) == 36  # UUID 형식
        assert sid.count("-") == 4

    def test_log_level_applied(self, tmp_path):
        setup_logging(_config(tmp_path, log_level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    def test_duplicate_setup_does_not_add_extra_handlers(self, tmp_path):
        config = _config(tmp_path)
        setup_logging(config)
        handler_count = len(logging.getLogger().handlers)
        setup_logging(config)
        assert len(logging.getLogger().handlers) == handler_count

    def test_rotating_handler_limits(self, tmp_path):
        setup_logging(_config(tmp_path))
        rotating = next(
            h for h in logging.getLogger().handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        )
        assert rotating.maxBytes == 10 * 1024 * 1024  # 10MB
        assert rotating.backupCount == 5

    def test_output_line_reaches_log_file(self, tmp_path):
        setup_logging(_config(tmp_path, log_format="text"))
        logging.getLogger("src.encoder.session").info(
            "done [out.mp4], 25 frames, 25 written", extra={"output": "out.mp4"}
        )
        content = (tmp_path / "logs" / LOG_FILENAME).read_text(encoding="utf-8")
        assert "[out.mp4] done [out.mp4], 25 frames, 25 written" in content


# =========================================================================
# JSON 포맷 테스트
# =========================================================================

class TestJsonFormat:
    def test_common_fields(self):
        data = json.loads(_emit(_JsonFormatter(session_id="sid-1"), "json.common", "메시지 확인"))
        assert data["session_id"] == "sid-1"
        assert data["level"] == "INFO"
        assert data["module"] == "json.common"
        assert data["message"] == "메시지 확인"

    def test_output_field_included(self):
        data = json.loads(_emit(
            _JsonFormatter(session_id="sid"), "json.output", "세션 시작",
            extra={"output": "sample-enc-mpeg4.mp4"},
        ))
        assert data["output"] == "sample-enc-mpeg4.mp4"

    def test_output_field_absent_without_extra(self):
        data = json.loads(_emit(_JsonFormatter(session_id="sid"), "json.plain", "팬아웃 시작"))
        assert "output" not in data

    def test_other_extra_fields_included(self):
        data = json.loads(_emit(
            _JsonFormatter(session_id="sid"), "json.extra", "추가 필드", extra={"frames": 42}
        ))
        assert data["frames"] == 42


# =========================================================================
# 텍스트 포맷 테스트
# =========================================================================

class TestTextFormat:
    def test_session_id_prefix(self):
        line = _emit(_TextFormatter(session_id="text-session-002"), "text.sid", "텍스트 로그")
        assert "[text-ses]" in line  # 8자 접두어
        assert "텍스트 로그" in line

    def test_no_session_id_placeholder(self):
        line = _emit(_TextFormatter(), "text.nosid", "메시지")
        assert "[no-sid]" in line

    def test_output_prefix_before_message(self):
        line = _emit(
            _TextFormatter(session_id="sid"), "text.output", "flush: 3 packets",
            extra={"output": "out.mpg"},
        )
        assert line.endswith("text.output: [out.mpg] flush: 3 packets")


# =========================================================================
# OutputLogger 어댑터 테스트
# =========================================================================

class TestOutputLogger:
    def test_wraps_named_logger(self):
        log = output_logger("my.module.name", "out.mp4")
        assert isinstance(log, OutputLogger)
        assert log.logger is logging.getLogger("my.module.name")
        assert log.filename == "out.mp4"

    def test_output_field_added_to_json(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(_JsonFormatter(session_id="sid"))
        base = logging.getLogger("adapter.json")
        base.addHandler(handler)
        base.setLevel(logging.DEBUG)
        try:
            output_logger("adapter.json", "sample-enc-mpeg2.mpg").info("세션 시작", extra={"frames": 3})
        finally:
            base.removeHandler(handler)

        data = json.loads(stream.getvalue().strip())
        assert data["output"] == "sample-enc-mpeg2.mpg"
        assert data["frames"] == 3
        assert data["module"] == "adapter.json"

    def test_output_prefix_in_text(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(_TextFormatter(session_id="sid"))
        base = logging.getLogger("adapter.text")
        base.addHandler(handler)
        base.setLevel(logging.DEBUG)
        try:
            output_logger("adapter.text", "out.mpg").warning("세션 정리 실패")
        finally:
            base.removeHandler(handler)

        assert stream.getvalue().strip().endswith("adapter.text: [out.mpg] 세션 정리 실패")
