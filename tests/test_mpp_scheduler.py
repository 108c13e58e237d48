"""
Tests for the scheduler loop, dispatch order and the component contract.
"""

import logging
import socket
import threading

import pytest

from ara_mpp import (
    Component,
    ComponentNotAttached,
    MppConfig,
    Scheduler,
    SchedulerState,
)

from conftest import wait_readable

pytestmark = pytest.mark.network


class Recorder(Component):
    """Records every hook call in order."""

    component_name = "NET"

    def __init__(self, publish_period_ms=0, listen_bus=False):
        self.publish_period_ms = publish_period_ms
        self.listen_bus = listen_bus
        self.calls = []
        self.published = 0
        self.parse_errors = []

    def apply_config(self, envelope):
        self.calls.append(("apply", envelope))
        if isinstance(envelope, dict):
            if envelope.get("stop"):
                self.stop()
            if "commit" in envelope:
                c = envelope["commit"]
                self.commit(c["subject"], c["polarity"], c.get("context"))
            if envelope.get("read"):
                self.reply(self.snapshot())

    def on_message(self, envelope):
        self.calls.append(("message", envelope))

    def on_parse_error(self, error):
        self.parse_errors.append(error)

    def publish_snapshot(self):
        self.published += 1

    def snapshot(self):
        return {"component": "NET", "sba": self.sba, "calls": len(self.calls)}


@pytest.fixture
def make_scheduler(config):
    created = []

    def factory(component=None, **kwargs):
        cfg = kwargs.pop("config", config)
        s = Scheduler(component or Recorder(), 0, config=cfg, **kwargs)
        created.append(s)
        return s

    yield factory

    for s in created:
        s.close()


class TestDispatch:
    """Hook order and per-tick servicing."""

    def test_apply_then_message(self, make_scheduler, peer):
        s = make_scheduler()
        peer.send(s.sba, {"x": 1})
        wait_readable(s.transport.data_socket)

        s.tick()

        assert s.component.calls == [("apply", {"x": 1}), ("message", {"x": 1})]

    def test_both_hooks_for_every_envelope(self, make_scheduler, peer):
        s = make_scheduler()
        for payload in ({"unknown": True}, {}, [1, 2]):
            peer.send(s.sba, payload)
            wait_readable(s.transport.data_socket)
            s.tick()

        kinds = [k for k, _ in s.component.calls]
        assert kinds == ["apply", "message"] * 3

    def test_one_message_per_socket_per_tick(self, make_scheduler, peer):
        s = make_scheduler()
        for i in range(3):
            peer.send(s.sba, {"n": i})
        wait_readable(s.transport.data_socket)

        s.tick()
        assert s.dispatcher.dispatched == 1

        s.tick()
        s.tick()
        assert s.dispatcher.dispatched == 3
        assert [e["n"] for k, e in s.component.calls if k == "apply"] == [0, 1, 2]

    def test_bus_serviced_after_data(self, make_scheduler, peer, config):
        s = make_scheduler(Recorder(listen_bus=True))
        peer.send(config.bus_port, {"src": "bus"})
        peer.send(s.sba, {"src": "data"})
        wait_readable(s.transport.bus_socket)
        wait_readable(s.transport.data_socket)

        s.tick()

        sources = [e["src"] for k, e in s.component.calls if k == "apply"]
        assert sources == ["data", "bus"]

    def test_malformed_payload_reaches_parse_error_hook_only(self, make_scheduler, peer):
        s = make_scheduler()
        peer.send(s.sba, b"{oops")
        wait_readable(s.transport.data_socket)

        s.tick()

        assert s.component.calls == []
        assert len(s.component.parse_errors) == 1


class TestServices:
    """Runtime services exposed to components."""

    def test_commit_announces_to_sink(self, make_scheduler, peer, sink):
        s = make_scheduler()
        peer.send(s.sba, {"commit": {"subject": "NET.rx_done", "polarity": True, "context": {"rx_len": 64}}})
        wait_readable(s.transport.data_socket)

        s.tick()

        assert len(s.beliefs) == 1
        assert sink.recv_raw() == (
            b'{"belief":{"component":"NET","subject":"NET.rx_done",'
            b'"polarity":true,"context":{"rx_len":64}}}\n'
        )

    def test_foreign_commit_sends_nothing(self, make_scheduler, peer, sink):
        s = make_scheduler()
        peer.send(s.sba, {"commit": {"subject": "OTHER.rx_done", "polarity": True}})
        wait_readable(s.transport.data_socket)

        s.tick()

        assert len(s.beliefs) == 0
        assert not sink.pending()

    def test_reply_to_reader(self, make_scheduler, peer):
        s = make_scheduler()
        peer.send(s.sba, {"read": True})
        wait_readable(s.transport.data_socket)

        s.tick()

        assert peer.recv_json()["component"] == "NET"

    def test_default_publish_goes_to_bus(self, config, clock):
        class Broadcaster(Component):
            component_name = "BRD"
            publish_period_ms = 10

            def apply_config(self, envelope):
                pass

            def on_message(self, envelope):
                pass

            def snapshot(self):
                return {"component": "BRD"}

        bus = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        bus.bind(("127.0.0.1", 0))
        bus.settimeout(1.0)
        cfg = MppConfig(bus_port=bus.getsockname()[1], sink_port=config.sink_port)
        s = Scheduler(Broadcaster(), 0, config=cfg, clock=clock)
        try:
            clock.advance(10)
            s.tick()
            data, _ = bus.recvfrom(1024)
            assert data == b'{"component":"BRD"}\n'
        finally:
            s.close()
            bus.close()

    def test_services_require_attachment(self):
        with pytest.raises(ComponentNotAttached):
            Recorder().commit("NET.x", True)
        assert Recorder().sba is None

    def test_now_ms_uses_scheduler_clock(self, make_scheduler, clock):
        s = make_scheduler(clock=clock)
        assert s.component.now_ms() == clock.now


class TestPublishing:
    """Publisher evaluation inside the loop."""

    def test_publish_rate_over_50ms(self, make_scheduler, clock):
        """10 ms period, 50 ms of 1 ms ticks, no traffic: 4..6 firings."""
        s = make_scheduler(Recorder(publish_period_ms=10), clock=clock)

        start = clock.now
        while clock.now - start < 50:
            s.tick()
            clock.advance(1)
        s.tick()

        assert 4 <= s.component.published <= 6

    def test_config_overrides_component_defaults(self, make_scheduler, config):
        cfg = MppConfig(
            bus_port=config.bus_port,
            sink_port=config.sink_port,
            publish_period_ms=25,
            listen_bus=True,
        )
        s = make_scheduler(Recorder(publish_period_ms=0, listen_bus=False), config=cfg)

        assert s.publisher.period_ms == 25
        assert s.transport.bus_socket is not None


class TestLifecycle:
    """Run/stop state machine."""

    def test_initial_state_running(self, make_scheduler):
        s = make_scheduler()
        assert s.state == SchedulerState.RUNNING
        assert s.healthy

    def test_stop_from_hook_ends_run(self, make_scheduler, peer):
        s = make_scheduler()
        thread = threading.Thread(target=s.run, daemon=True)
        thread.start()

        peer.send(s.sba, {"stop": True})
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert s.state == SchedulerState.STOPPED
        assert ("message", {"stop": True}) in s.component.calls

    def test_close_while_running(self, make_scheduler):
        s = make_scheduler()
        thread = threading.Thread(target=s.run, daemon=True)
        thread.start()

        s.close()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert s.transport.data_socket is None

    def test_bind_failure_never_loops(self, config, caplog):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        blocker.bind(("0.0.0.0", 0))
        port = blocker.getsockname()[1]
        try:
            component = Recorder(publish_period_ms=1)
            s = Scheduler(component, port, config=config)

            assert not s.healthy
            assert s.state == SchedulerState.STOPPED

            with caplog.at_level(logging.INFO, logger="Ara.Mpp.Scheduler"):
                s.run()

            assert s.tick_count == 0
            assert component.published == 0
            assert f"running on sba={port}" in caplog.text
            s.close()
        finally:
            blocker.close()

    def test_startup_line_mentions_bus(self, make_scheduler, caplog):
        s = make_scheduler(Recorder(listen_bus=True))
        s.stop()

        with caplog.at_level(logging.INFO, logger="Ara.Mpp.Scheduler"):
            s.run()

        assert "(listening BUS)" in caplog.text

    def test_hook_exception_propagates(self, make_scheduler, peer):
        class Exploding(Recorder):
            def on_message(self, envelope):
                raise RuntimeError("boom")

        s = make_scheduler(Exploding())
        peer.send(s.sba, {"x": 1})

        with pytest.raises(RuntimeError, match="boom"):
            s.run()
