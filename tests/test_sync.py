"""
Tests for the local-first strategy: save/load, queue flush with per-key
acknowledgement, connectivity gating and the periodic sync thread.

Covers:
- save + offline load returns exactly what was saved
- online load prefers the server copy and overwrites the local cache
- flush drains the queue; failed keys stay queued
- a write that lands during a flush is not lost
- remote passthroughs swallow failures
"""
import threading

import httpx
import pytest

from registro.client import build_periodic_sync, build_service
from registro.client.api import RemoteStore, RemoteStoreError
from registro.client.canvas import EmotionCanvas
from registro.client.connectivity import ProbeConnectivity
from registro.client.service import PeriodicSync, StorageService, SyncStatus
from registro.core.config import ClientSettings

DAY = "2026-02-20"


def _html_http():
    return httpx.Client(
        base_url="http://device.test",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>login</html>")
        ),
    )


def _canvas(*names):
    canvas = EmotionCanvas()
    for name in names:
        canvas.add_emotion(name)
    return canvas


class TestInitialization:
    def test_usuario_id_requires_initialize(self, local_store, fake_remote, connectivity):
        service = StorageService(local_store, fake_remote, connectivity)
        with pytest.raises(RuntimeError):
            service.usuario_id

    def test_identity_is_stable(self, local_store, fake_remote, connectivity):
        a = StorageService(local_store, fake_remote, connectivity).initialize()
        b = StorageService(local_store, fake_remote, connectivity).initialize()
        assert a.usuario_id == b.usuario_id


class TestSaveLoadOffline:
    def test_save_then_load_offline_returns_same_snapshot(self, service, connectivity):
        connectivity.connected = False
        canvas = _canvas("Alegría", "Alegría", "Miedo")
        status = service.save(DAY, canvas.burbujas, canvas.conexiones)

        loaded = service.load(DAY)
        assert loaded["burbujas"] == canvas.to_snapshot()["burbujas"]
        assert loaded["conexiones"] == []
        assert status == SyncStatus(pendientes=1, sincronizado=False)

    def test_offline_flush_is_a_noop(self, fake_service, fake_remote, connectivity):
        connectivity.connected = False
        fake_service.write_local(DAY, [], [])
        assert fake_service.flush_queue() is False
        assert fake_remote.pushed == []
        assert fake_service.sync_status().pendientes == 1

    def test_load_unknown_day_offline(self, service, connectivity):
        connectivity.connected = False
        assert service.load("1990-01-01") is None


class TestSaveOnline:
    def test_save_pushes_to_server(self, service, client):
        canvas = _canvas("Calma", "Calma")
        status = service.save(DAY, canvas.burbujas, canvas.conexiones)

        assert status.sincronizado is True
        remote = client.get(f"/api/emociones/{service.usuario_id}/{DAY}").json()
        assert remote["burbujas"][0]["nombre"] == "Calma"
        assert remote["burbujas"][0]["count"] == 2
        assert service.read_local(DAY)["synced"] is True

    def test_remote_failure_during_save_is_swallowed(self, fake_service, fake_remote):
        fake_remote.fail_dates.add(DAY)
        status = fake_service.save(DAY, [], [])
        assert status == SyncStatus(pendientes=1, sincronizado=False)
        assert fake_service.read_local(DAY) is not None

    def test_local_write_happens_before_network(self, fake_service, fake_remote):
        seen = {}
        fake_remote.on_push = lambda fecha: seen.setdefault(fecha, fake_service.read_local(fecha))
        fake_service.save(DAY, [], [])
        assert seen[DAY] is not None


class TestLoadOnline:
    def test_remote_copy_wins_and_overwrites_cache(self, service, remote, connectivity):
        connectivity.connected = False
        local = _canvas("Tristeza")
        service.save(DAY, local.burbujas, local.conexiones)

        server = _canvas("Alegría", "Amor")
        remote.push_snapshot(
            service.usuario_id, DAY,
            server.to_snapshot()["burbujas"], server.to_snapshot()["conexiones"],
        )

        connectivity.connected = True
        loaded = service.load(DAY)
        assert [b["nombre"] for b in loaded["burbujas"]] == ["Alegría", "Amor"]

        connectivity.connected = False
        cached = service.load(DAY)
        assert [b["nombre"] for b in cached["burbujas"]] == ["Alegría", "Amor"]
        assert cached["synced"] is True

    def test_empty_remote_falls_back_to_local(self, service, connectivity):
        connectivity.connected = False
        local = _canvas("Tristeza")
        service.save(DAY, local.burbujas, local.conexiones)

        # Server has never seen this user's day: it answers with empty arrays.
        connectivity.connected = True
        loaded = service.load(DAY)
        assert [b["nombre"] for b in loaded["burbujas"]] == ["Tristeza"]

    def test_fetch_failure_falls_back_to_local(self, fake_service, fake_remote):
        fake_remote.fail_dates.add(DAY)
        fake_service.save(DAY, _canvas("Miedo").burbujas, [])
        fake_remote.fail_fetch = True
        assert fake_service.load(DAY)["burbujas"][0]["nombre"] == "Miedo"


class TestFlush:
    def test_successful_flush_empties_queue(self, fake_service, fake_remote, connectivity):
        connectivity.connected = False
        for day in ("2026-02-18", "2026-02-19", "2026-02-20"):
            fake_service.write_local(day, [], [])
        assert fake_service.sync_status().pendientes == 3

        connectivity.connected = True
        assert fake_service.flush_queue() is True
        assert fake_remote.pushed == ["2026-02-18", "2026-02-19", "2026-02-20"]
        assert fake_service.sync_status() == SyncStatus(pendientes=0, sincronizado=True)

    def test_failed_key_stays_queued(self, fake_service, fake_remote, connectivity):
        connectivity.connected = False
        for day in ("2026-02-18", "2026-02-19", "2026-02-20"):
            fake_service.write_local(day, [], [])
        fake_remote.fail_dates.add("2026-02-19")

        connectivity.connected = True
        assert fake_service.flush_queue() is False
        assert fake_remote.pushed == ["2026-02-18", "2026-02-20"]
        assert fake_service.local.pending_keys() == ["emociones_2026-02-19"]
        assert fake_service.read_local("2026-02-19")["synced"] is False

        fake_remote.fail_dates.clear()
        assert fake_service.flush_queue() is True
        assert fake_service.sync_status().pendientes == 0

    def test_write_during_flush_keeps_key_queued(self, fake_service, fake_remote, connectivity):
        connectivity.connected = False
        fake_service.write_local(DAY, [], [])
        newer = _canvas("Sorpresa")

        def concurrent_write(fecha):
            fake_remote.on_push = None
            fake_service.write_local(fecha, newer.burbujas, [])
            fake_service.write_local("2026-02-21", [], [])

        fake_remote.on_push = concurrent_write
        connectivity.connected = True
        fake_service.flush_queue()

        assert fake_service.local.pending_keys() == [
            f"emociones_{DAY}", "emociones_2026-02-21",
        ]
        assert fake_service.read_local(DAY)["burbujas"][0]["nombre"] == "Sorpresa"

        assert fake_service.flush_queue() is True
        assert fake_remote.days[DAY]["burbujas"][0]["nombre"] == "Sorpresa"

    def test_cleared_snapshot_is_dropped_from_queue(self, fake_service, fake_remote):
        fake_remote.fail_dates.add(DAY)
        fake_service.save(DAY, [], [])
        fake_service.clear_cache()
        fake_remote.fail_dates.clear()

        assert fake_service.flush_queue() is True
        assert fake_remote.pushed == []
        assert fake_service.sync_status().sincronizado is True

    def test_flush_against_real_server(self, service, client, connectivity):
        connectivity.connected = False
        service.save("2026-02-10", _canvas("Amor").burbujas, [])
        service.save("2026-02-11", _canvas("Calma").burbujas, [])

        connectivity.connected = True
        assert service.flush_queue() is True
        history = client.get(f"/api/exportar/{service.usuario_id}").json()
        assert [d["fecha"] for d in history["datos"]] == ["2026-02-10", "2026-02-11"]


class TestServerReads:
    def test_failures_return_defaults(self, fake_service):
        assert fake_service.history() == []
        assert fake_service.statistics() is None
        assert fake_service.export() is None

    def test_statistics_from_server(self, service):
        from datetime import datetime, timezone
        today = datetime.now(tz=timezone.utc).date()
        service.save(today, _canvas("Alegría", "Alegría").burbujas, [])
        stats = service.statistics(dias=7)
        assert stats["emociones_mas_frecuentes"]["Alegría"]["count"] == 2
        assert len(service.history()) == 1
        assert service.export()["total_dias"] == 1


class TestRemoteStore:
    def test_http_error_carries_status_and_code(self, remote, usuario):
        with pytest.raises(RemoteStoreError) as info:
            remote.delete_day(usuario, "2026-06-01")
        assert info.value.status_code == 404
        assert info.value.code == "SNAPSHOT_NOT_FOUND"

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("network unreachable", request=request)

        store = RemoteStore(httpx.Client(base_url="http://device.test", transport=httpx.MockTransport(handler)))
        with pytest.raises(RemoteStoreError) as info:
            store.fetch_day("user_1", DAY)
        assert info.value.status_code is None

    def test_non_json_success_body(self):
        store = RemoteStore(_html_http())
        with pytest.raises(RemoteStoreError) as info:
            store.fetch_day("user_1", DAY)
        assert info.value.status_code == 200
        assert "invalid JSON" in str(info.value)


class TestCaptivePortal:
    """A 2xx HTML answer behaves like any other remote failure."""

    @pytest.fixture()
    def portal_service(self, local_store, connectivity):
        return StorageService(local_store, RemoteStore(_html_http()), connectivity).initialize()

    def test_save_keeps_day_queued(self, portal_service):
        status = portal_service.save(DAY, _canvas("Calma").burbujas, [])
        assert status == SyncStatus(pendientes=1, sincronizado=False)
        assert portal_service.read_local(DAY)["synced"] is False

    def test_load_falls_back_to_local(self, portal_service, connectivity):
        connectivity.connected = False
        portal_service.save(DAY, _canvas("Miedo").burbujas, [])
        connectivity.connected = True
        assert portal_service.load(DAY)["burbujas"][0]["nombre"] == "Miedo"

    def test_server_reads_return_defaults(self, portal_service):
        assert portal_service.history() == []
        assert portal_service.statistics(dias=7) is None
        assert portal_service.export() is None


class TestConnectivity:
    def test_probe_online(self, client):
        assert ProbeConnectivity(client).is_connected() is True

    def test_probe_offline(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        http = httpx.Client(base_url="http://device.test", transport=httpx.MockTransport(handler))
        assert ProbeConnectivity(http).is_connected() is False

    def test_probe_server_error_is_offline(self):
        http = httpx.Client(
            base_url="http://device.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(503, json={"status": "error"})),
        )
        assert ProbeConnectivity(http).is_connected() is False


class TestPeriodicSync:
    def test_tick_flushes_and_reports(self, fake_service, fake_remote):
        fake_remote.fail_dates.add(DAY)
        fake_service.save(DAY, [], [])
        fake_remote.fail_dates.clear()

        reported = []
        status = PeriodicSync(fake_service, interval=30, on_status=reported.append).tick()

        assert status == SyncStatus(pendientes=0, sincronizado=True)
        assert reported == [status]
        assert fake_remote.pushed == [DAY]

    def test_background_thread_drains_queue(self, fake_service, fake_remote, connectivity):
        connectivity.connected = False
        fake_service.write_local(DAY, [], [])
        connectivity.connected = True

        drained = threading.Event()

        def on_status(status):
            if status.sincronizado:
                drained.set()

        syncer = PeriodicSync(fake_service, interval=0.01, on_status=on_status)
        syncer.start()
        try:
            assert drained.wait(timeout=5)
        finally:
            syncer.stop(timeout=5)
        assert not syncer.running
        assert fake_remote.pushed[0] == DAY


class TestWiring:
    @pytest.fixture()
    def cfg(self):
        return ClientSettings(
            API_URL="http://device.test",
            LOCAL_DB_URL="sqlite://",
            LOG_LEVEL="DEBUG",
            SYNC_INTERVAL_SECONDS=12.5,
            PROBE_TIMEOUT=0.5,
        )

    def test_build_service_uses_settings(self, cfg):
        service = build_service(cfg)
        try:
            assert service.usuario_id.startswith("user_")
            assert isinstance(service.connectivity, ProbeConnectivity)
            assert service.connectivity.timeout == 0.5
            assert service.remote.api_prefix == "/api"
        finally:
            service.remote.close()

    def test_build_service_configures_logging(self, cfg):
        import logging

        root = logging.getLogger()
        previous = root.level
        service = build_service(cfg)
        service.remote.close()
        try:
            assert root.level == logging.DEBUG
            assert any(getattr(h, "_registro", False) for h in root.handlers)
        finally:
            root.setLevel(previous)

    def test_periodic_sync_interval_from_settings(self, cfg, fake_service):
        reported = []
        syncer = build_periodic_sync(fake_service, cfg, on_status=reported.append)
        assert syncer.interval == 12.5
        assert syncer.service is fake_service
        assert not syncer.running
        syncer.tick()
        assert reported == [SyncStatus(pendientes=0, sincronizado=True)]
