import pytest

from ballot.utils.polling import poll_until


def test_returns_first_result_without_sleeping(fake_clock):
    result = poll_until(lambda: "ready", timeout=5, sleep=fake_clock.sleep, clock=fake_clock)
    assert result == "ready"
    assert fake_clock.sleeps == []


def test_polls_until_result(fake_clock):
    answers = iter([None, None, 7])
    result = poll_until(lambda: next(answers), timeout=30, interval=2, sleep=fake_clock.sleep, clock=fake_clock)
    assert result == 7
    assert fake_clock.sleeps == [2, 2]


def test_gives_up_at_deadline(fake_clock):
    calls = []

    def never():
        calls.append(fake_clock.now)
        return None

    result = poll_until(never, timeout=5, interval=2, sleep=fake_clock.sleep, clock=fake_clock)
    assert result is None
    # the last sleep is clipped so the deadline is not overshot
    assert fake_clock.sleeps == [2, 2, 1]
    assert calls == [0, 2, 4, 5]


def test_backoff_is_capped(fake_clock):
    answers = iter([None, None, None, None, "done"])
    poll_until(
        lambda: next(answers),
        timeout=100,
        interval=1,
        backoff=2,
        max_interval=3,
        sleep=fake_clock.sleep,
        clock=fake_clock,
    )
    assert fake_clock.sleeps == [1, 2, 3, 3]


def test_zero_timeout_tries_once(fake_clock):
    calls = []
    assert poll_until(lambda: calls.append(1), timeout=0, sleep=fake_clock.sleep, clock=fake_clock) is None
    assert calls == [1]


@pytest.mark.parametrize("timeout, interval", [(-1, 1), (5, 0)])
def test_rejects_bad_arguments(timeout, interval):
    with pytest.raises(ValueError):
        poll_until(lambda: None, timeout=timeout, interval=interval)
