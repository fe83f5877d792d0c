"""Action log unit tests"""

import logging

from draftkit.actions import ActionLog


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_log_action_writes_to_logger(caplog):
    log = ActionLog(user="editor@example.com")

    with caplog.at_level(logging.INFO, logger="draftkit.actions"):
        assert log.log_action("doc.save", {"docId": "Pages/home"}) is True

    assert "doc.save" in caplog.text
    assert "Pages/home" in caplog.text
    assert "editor@example.com" not in caplog.text


def test_throttle_per_id():
    clock = FakeClock()
    log = ActionLog(clock=clock)

    assert log.log_action("doc.save", throttle=300, throttle_id="Pages/home") is True
    assert log.log_action("doc.save", throttle=300, throttle_id="Pages/home") is False
    assert log.log_action("doc.save", throttle=300, throttle_id="Pages/about") is True

    clock.now += 301
    assert log.log_action("doc.save", throttle=300, throttle_id="Pages/home") is True


def test_unthrottled_actions_always_log():
    log = ActionLog()

    assert log.log_action("doc.publish") is True
    assert log.log_action("doc.publish") is True


def test_reset_clears_throttle():
    log = ActionLog(clock=FakeClock())
    log.log_action("doc.save", throttle=300)

    log.reset()

    assert log.log_action("doc.save", throttle=300) is True
