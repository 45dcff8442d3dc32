"""
Unit tests for company context and cancellation tokens.
"""

import threading

import pytest

from tax_gateway_core.context import CancellationToken, CompanyContext, company_context
from tax_gateway_core.exceptions import CancelledError, ValidationError


class TestCompanyContext:
    def test_set_and_get(self):
        CompanyContext.set_current_gstin(" 29ABCDE1234F1Z5 ")

        assert CompanyContext.get_current_gstin() == "29ABCDE1234F1Z5"

    @pytest.mark.parametrize("gstin", ["", "   ", None])
    def test_blank_rejected(self, gstin):
        with pytest.raises(ValidationError):
            CompanyContext.set_current_gstin(gstin)

    def test_context_manager_restores_previous(self):
        CompanyContext.set_current_gstin("29ABCDE1234F1Z5")

        with company_context("27AAPFU0939F1ZV"):
            assert CompanyContext.get_current_gstin() == "27AAPFU0939F1ZV"

        assert CompanyContext.get_current_gstin() == "29ABCDE1234F1Z5"

    def test_context_manager_clears_on_error(self):
        with pytest.raises(RuntimeError):
            with company_context("29ABCDE1234F1Z5"):
                raise RuntimeError("failed mid-operation")

        assert CompanyContext.get_current_gstin() is None

    def test_thread_isolation(self):
        CompanyContext.set_current_gstin("29ABCDE1234F1Z5")
        seen = []

        thread = threading.Thread(target=lambda: seen.append(CompanyContext.get_current_gstin()))
        thread.start()
        thread.join()

        assert seen == [None]


class TestCancellationToken:
    def test_not_cancelled_initially(self):
        token = CancellationToken()

        assert not token.is_cancelled
        token.raise_if_cancelled("portal request")

    def test_raise_after_cancel(self):
        token = CancellationToken()
        token.cancel("shutdown")

        with pytest.raises(CancelledError) as exc_info:
            token.raise_if_cancelled("portal request")

        assert exc_info.value.context["reason"] == "shutdown"
        assert "portal request" in exc_info.value.message

    def test_wait_returns_early_when_cancelled(self):
        token = CancellationToken()
        token.cancel()

        assert token.wait(30) is True

    def test_wait_times_out(self):
        assert CancellationToken().wait(0.01) is False

    def test_cancel_from_another_thread(self):
        token = CancellationToken()
        timer = threading.Timer(0.01, token.cancel)
        timer.start()

        assert token.wait(5) is True
        timer.join()
