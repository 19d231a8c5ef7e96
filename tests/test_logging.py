from tilecanvas.core import logging as tc_logging


def test_log_file_collects_prefixed_lines(tmp_path):
    tc_logging.set_logging_enabled(True)
    tc_logging.init_logging(str(tmp_path))
    try:
        tc_logging.log_engine("Flood: 16 cell(s) changed")
        tc_logging.log_fill("reconcile: 0 cell(s) changed")
    finally:
        tc_logging.close_logging()
    text = (tmp_path / tc_logging.LOG_FILE_NAME).read_text(encoding='utf-8')
    assert "[TileGridEngine] Flood: 16 cell(s) changed" in text
    assert "[FillEngine] reconcile: 0 cell(s) changed" in text


def test_disabled_file_logging_writes_nothing(tmp_path):
    tc_logging.init_logging(str(tmp_path))
    tc_logging.set_logging_enabled(False)
    try:
        tc_logging.log_compat("hidden")
    finally:
        tc_logging.close_logging()
    assert "hidden" not in (tmp_path / tc_logging.LOG_FILE_NAME).read_text(encoding='utf-8')


def test_console_output_can_be_silenced(capsys):
    tc_logging.set_console_enabled(True)
    tc_logging.log_brush("Mode changed")
    tc_logging.set_console_enabled(False)
    tc_logging.log_brush("quiet")
    out = capsys.readouterr().out
    assert "[Brush] Mode changed" in out
    assert "quiet" not in out
