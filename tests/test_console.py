import io

import pytest

from styx.console import BuildEvent, Logger, MessageType


@pytest.fixture
def out():
    return io.StringIO()


def test_info_plain_message(out):
    Logger(output=out).info("hello world")
    assert out.getvalue() == "[INFO] hello world\n"


def test_format_arguments(out):
    Logger(output=out).info("built %d files in %s", 3, "src")
    assert out.getvalue() == "[INFO] built 3 files in src\n"


def test_percent_kept_without_arguments(out):
    Logger(output=out).note("100% done")
    assert out.getvalue() == "[NOTE] 100% done\n"


@pytest.mark.parametrize(
    ("method", "label"),
    [
        ("success", "[SUCCESS]"),
        ("info", "[INFO]"),
        ("note", "[NOTE]"),
        ("warning", "[WARNING]"),
        ("error", "[ERROR]"),
    ],
)
def test_helper_labels(out, method, label):
    getattr(Logger(output=out), method)("msg")
    assert out.getvalue() == f"{label} msg\n"


def test_log_with_explicit_type(out):
    Logger(output=out).log(MessageType.WARNING, "careful %s", "now")
    assert out.getvalue() == "[WARNING] careful now\n"


def test_start_progress_draws_first_frame(out):
    Logger(output=out).start_progress(2, "compiling")
    assert out.getvalue() == "\r[PROGRESS] ⠋ [0%] compiling\n"


def test_update_progress_percentage_and_spinner(out):
    logger = Logger(output=out)
    logger.start_progress(4, "compiling")
    logger.update_progress(4, "done")
    assert out.getvalue().endswith("\r[PROGRESS] ⠙ [100%] done\n")


def test_update_with_empty_message_keeps_previous(out):
    logger = Logger(output=out)
    logger.start_progress(4, "compiling")
    logger.update_progress(0, "")
    last = out.getvalue().splitlines()[-1]
    assert last.endswith("compiling")


def test_zero_total_reports_zero_percent(out):
    logger = Logger(output=out)
    logger.start_progress(0, "nothing")
    logger.update_progress(5)
    assert "[0%]" in out.getvalue().splitlines()[-1]


def test_update_without_progress_writes_nothing(out):
    Logger(output=out).update_progress(1, "x")
    assert out.getvalue() == ""


def test_stop_without_progress_writes_nothing(out):
    Logger(output=out).stop_progress()
    assert out.getvalue() == ""


def test_stop_clears_line(out):
    logger = Logger(output=out)
    logger.start_progress(2, "compiling")
    first_frame = "[PROGRESS] ⠋ [0%] compiling"
    logger.stop_progress()
    assert out.getvalue().endswith("\r" + " " * len(first_frame) + "\r")


def test_log_during_progress_redraws(out):
    logger = Logger(output=out)
    logger.start_progress(2, "compiling")
    logger.info("x")
    text = out.getvalue()
    assert text.count("[PROGRESS]") == 2
    assert "[INFO] x\n" in text
    assert text.endswith("\r[PROGRESS] ⠙ [0%] compiling\n")


def test_log_after_stop_does_not_redraw(out):
    logger = Logger(output=out)
    logger.start_progress(2, "compiling")
    logger.stop_progress()
    logger.info("after")
    text = out.getvalue()
    assert text.count("[PROGRESS]") == 1
    assert text.endswith("[INFO] after\n")


@pytest.mark.parametrize(
    ("event", "expected"),
    [
        (
            BuildEvent(MessageType.ERROR, "bad", source="main.c", line=10, column=5),
            "main.c:10:5: [ERROR] bad\n",
        ),
        (
            BuildEvent(MessageType.WARNING, "odd", source="main.c", line=10),
            "main.c:10: [WARNING] odd\n",
        ),
        (
            BuildEvent(MessageType.NOTE, "see", source="main.c"),
            "main.c: [NOTE] see\n",
        ),
        (BuildEvent(MessageType.INFO, "plain"), "[INFO] plain\n"),
    ],
)
def test_report_build_event_location(out, event, expected):
    Logger(output=out).report_build_event(event)
    assert out.getvalue() == expected


def test_code_shown_only_when_verbose():
    event = BuildEvent(MessageType.ERROR, "bad", source="a.c", line=1, code="int x")
    quiet, loud = io.StringIO(), io.StringIO()
    Logger(verbose=False, output=quiet).report_build_event(event)
    Logger(verbose=True, output=loud).report_build_event(event)
    assert "int x" not in quiet.getvalue()
    assert loud.getvalue().endswith("    int x\n")


def test_suggestions_are_indented(out):
    event = BuildEvent(MessageType.ERROR, "bad", suggestions=["try this", "or that"])
    Logger(output=out).report_build_event(event)
    assert out.getvalue() == "[ERROR] bad\n    try this\n    or that\n"


def test_no_color_codes_on_non_tty(out):
    Logger(output=out).error("boom")
    assert "\033[" not in out.getvalue()