"""Tests for the scenario Clock."""

from operator_core.clock.clock import Clock, format_time, parse_time
from operator_core.events import EventBus, EventType


class TestClockTick:
    def setup_method(self):
        self.bus = EventBus()
        self.clock = Clock(self.bus)
        self.clock.initialize(start_minutes=100, end_minutes=110, real_seconds_per_game_minute=2.0)
        self.clock.start()

    def test_tick_accumulates_real_seconds(self):
        assert self.clock.tick(1.5) == 0
        assert self.clock.tick(1.0) == 1
        assert self.clock.current_minutes == 101
        assert self.clock.tick(3.5) == 2
        assert self.clock.current_minutes == 103

    def test_time_changed_per_minute(self):
        self.clock.tick(6.0)
        changes = self.bus.recent_of_type(EventType.TIME_CHANGED)
        assert [e.payload["minutes"] for e in changes] == [101, 102, 103]

    def test_no_advance_when_stopped_or_paused(self):
        self.clock.pause()
        assert self.clock.tick(10.0) == 0
        self.clock.resume()
        self.clock.stop()
        assert self.clock.tick(10.0) == 0
        assert self.clock.current_minutes == 100

    def test_time_up_fires_once_and_stops(self):
        self.clock.tick(100.0)
        assert self.clock.current_minutes == 110
        assert self.clock.is_running is False
        assert self.clock.tick(100.0) == 0
        assert len(self.bus.recent_of_type(EventType.TIME_UP)) == 1

    def test_admin_advance_past_end_fires_once(self):
        self.clock.advance_time(20)
        self.clock.advance_time(5)
        assert len(self.bus.recent_of_type(EventType.TIME_UP)) == 1

    def test_set_time_back_rearms_time_up(self):
        self.clock.set_time(110)
        self.clock.set_time(105)
        self.clock.set_time(111)
        assert len(self.bus.recent_of_type(EventType.TIME_UP)) == 2

    def test_advance_ignores_non_positive(self):
        self.clock.advance_time(0)
        self.clock.advance_time(-5)
        assert self.clock.current_minutes == 100
        assert self.bus.recent_of_type(EventType.TIME_CHANGED) == []


class TestOvernightWindow:
    def test_end_before_start_crosses_midnight(self):
        clock = Clock()
        clock.initialize(start_minutes=1320, end_minutes=360)
        assert clock.is_time_up is False
        assert clock.end_minutes == 1800
        assert clock.remaining_minutes == 480

        clock.set_time(1440 + 125)
        assert clock.formatted_time == "02:05"
        assert clock.is_time_up is False

        clock.set_time(1800)
        assert clock.is_time_up is True


class TestDispatch:
    def test_record_dispatch_is_set_once(self):
        bus = EventBus()
        clock = Clock(bus)
        clock.initialize(0, 300)

        assert clock.record_dispatch_at(150) is True
        assert clock.record_dispatch_at(120) is False
        assert clock.dispatch_minute == 150
        assert len(bus.recent_of_type(EventType.DISPATCH_RECORDED)) == 1

    def test_record_dispatch_uses_current_time(self):
        clock = Clock()
        clock.initialize(0, 300)
        clock.set_time(42)
        clock.record_dispatch()
        assert clock.has_dispatched is True
        assert clock.dispatch_minute == 42

    def test_clear_and_initialize_reset_dispatch(self):
        clock = Clock()
        clock.initialize(0, 300)
        clock.record_dispatch_at(10)
        clock.clear_dispatch_record()
        assert clock.dispatch_minute is None

        clock.record_dispatch_at(20)
        clock.initialize(0, 300)
        assert clock.has_dispatched is False


class TestTimeFormatting:
    def test_format_wraps_at_24h(self):
        assert format_time(0) == "00:00"
        assert format_time(1320) == "22:00"
        assert format_time(1440 + 169) == "02:49"

    def test_parse(self):
        assert parse_time("02:49") == 169
        assert parse_time("22:00") == 1320

    def test_parse_invalid_is_zero(self):
        assert parse_time("") == 0
        assert parse_time("2249") == 0
        assert parse_time("ab:cd") == 0
