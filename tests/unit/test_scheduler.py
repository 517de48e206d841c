"""Тесты RateRefreshScheduler."""

import threading

import pytest

from commerce_i18n.rates import RateProviderOrchestrator, RateRefreshScheduler, RateStore, RefreshStatus, StaticRateProvider


@pytest.fixture
def orchestrator():
    orchestrator = RateProviderOrchestrator(
        [StaticRateProvider("static", "USD", {"EUR": "0.90", "GBP": "0.78"})], RateStore("USD")
    )
    yield orchestrator
    orchestrator.close()


class TestScheduler:
    def test_run_once(self, orchestrator):
        results = []
        scheduler = RateRefreshScheduler(
            orchestrator, "USD", expected_currencies=lambda: ["EUR", "GBP"], on_result=results.append
        )
        result = scheduler.run_once()
        assert result.status == RefreshStatus.UPDATED
        assert scheduler.last_result is result
        assert results == [result]

    def test_expected_currencies_read_each_cycle(self, orchestrator):
        expected = ["EUR"]
        scheduler = RateRefreshScheduler(orchestrator, "USD", expected_currencies=lambda: expected)
        assert scheduler.run_once().success
        expected.append("JPY")
        assert scheduler.run_once().status == RefreshStatus.ALL_PROVIDERS_FAILED

    def test_background_cycle_on_start(self, orchestrator):
        done = threading.Event()
        scheduler = RateRefreshScheduler(orchestrator, "USD", interval_sec=3600, on_result=lambda r: done.set())
        scheduler.start()
        try:
            assert done.wait(timeout=5)
            assert scheduler.running
        finally:
            scheduler.stop(timeout=5)
        assert not scheduler.running
        assert orchestrator.rate_store.latest("EUR") is not None

    def test_trigger_now(self, orchestrator):
        done = threading.Event()
        scheduler = RateRefreshScheduler(
            orchestrator, "USD", interval_sec=3600, on_result=lambda r: done.set(), run_immediately=False
        )
        scheduler.start()
        try:
            assert not done.wait(timeout=0.2)
            scheduler.trigger_now()
            assert done.wait(timeout=5)
        finally:
            scheduler.stop(timeout=5)

    def test_invalid_interval(self, orchestrator):
        with pytest.raises(ValueError):
            RateRefreshScheduler(orchestrator, "USD", interval_sec=0)
