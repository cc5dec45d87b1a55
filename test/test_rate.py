from tweetspider.rate import RateWindowTracker


def test_short_and_long_windows():
    rate = RateWindowTracker()
    rate.observe(5, now=0.0)
    rate.observe(3, now=5.0)
    rate.observe(2, now=15.0)

    stats = rate.stats(now=16.0)
    assert (stats.last_10s.calls, stats.last_10s.records) == (1, 2)
    assert (stats.last_60s.calls, stats.last_60s.records) == (3, 10)


def test_old_events_are_pruned_on_insert():
    rate = RateWindowTracker()
    rate.observe(4, now=0.0)
    rate.observe(1, now=61.0)
    assert rate.window(3600, now=61.0).calls == 1


def test_uses_clock_when_no_time_given():
    now = [100.0]
    rate = RateWindowTracker(clock=lambda: now[0])
    rate.observe(7)
    now[0] = 105.0
    assert rate.stats().last_10s.records == 7


def test_clock_failure_reports_zeros():
    def broken():
        raise OSError("no clock")

    rate = RateWindowTracker(clock=broken)
    stats = rate.stats()
    assert stats.last_10s.calls == 0
    assert stats.last_60s.records == 0
    assert rate.window(10).calls == 0


def test_observe_with_broken_clock_is_dropped():
    def broken():
        raise OSError("no clock")

    rate = RateWindowTracker(clock=broken)
    rate.observe(3)
    assert rate.window(60, now=0.0).calls == 0


def test_prune_keeps_events_inside_retention():
    rate = RateWindowTracker()
    for ts in (0.0, 10.0, 20.0, 70.0, 75.0):
        rate.observe(1, now=ts)
    assert rate.window(3600, now=75.0).calls == 3
