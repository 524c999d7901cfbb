from unittest.mock import MagicMock

import pytest

from platforms.errors import ProcessingError
from services.polling import wait_for_ready


def _scripted(*states):
    return MagicMock(side_effect=list(states))


def test_ready_on_third_check(no_sleep):
    check = _scripted(("pending", 2, ""), ("pending", None, ""), ("succeeded", None, ""))

    assert wait_for_ready(check, "m1", max_attempts=10, default_delay=5, strict=False) is True

    assert check.call_count == 3
    assert [c.args[0] for c in no_sleep.call_args_list] == [2, 5]


def test_failed_state_stops_immediately(no_sleep):
    check = _scripted(("failed", None, "InvalidMedia"), ("succeeded", None, ""))

    with pytest.raises(ProcessingError) as exc:
        wait_for_ready(check, "m1", max_attempts=10, default_delay=5)

    assert "InvalidMedia" in str(exc.value)
    assert check.call_count == 1
    no_sleep.assert_not_called()


def test_graph_error_state_is_terminal(no_sleep):
    check = _scripted(("IN_PROGRESS", None, ""), ("ERROR", None, "ERROR"))
    with pytest.raises(ProcessingError):
        wait_for_ready(check, "c1", max_attempts=5, default_delay=3)
    assert check.call_count == 2


def test_graph_finished_state_is_ready(no_sleep):
    check = _scripted(("FINISHED", None, ""))
    assert wait_for_ready(check, "c1", max_attempts=5, default_delay=3) is True


def test_missing_processing_info_counts_as_ready(no_sleep):
    check = _scripted((None, None, ""))
    assert wait_for_ready(check, "m1", max_attempts=5, default_delay=3) is True
    no_sleep.assert_not_called()


def test_exhaustion_proceeds_with_warning(no_sleep, caplog):
    check = MagicMock(return_value=("in_progress", 1, ""))

    assert wait_for_ready(check, "m1", max_attempts=3, default_delay=5, strict=False) is False

    assert check.call_count == 3
    # no sleep after the final check
    assert no_sleep.call_count == 2
    assert "proceeding anyway" in caplog.text


def test_exhaustion_fails_when_strict(no_sleep):
    check = MagicMock(return_value=("in_progress", 1, ""))
    with pytest.raises(ProcessingError):
        wait_for_ready(check, "m1", max_attempts=2, default_delay=5, strict=True)


def test_initial_delay_before_first_check(no_sleep):
    check = _scripted(("succeeded", None, ""))
    assert wait_for_ready(check, "m1", max_attempts=3, default_delay=5, initial_delay=4) is True
    no_sleep.assert_called_once_with(4)
