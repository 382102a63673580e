import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from auragrow.config import Settings
from auragrow.errors import RemoteError
from auragrow.handlers.commands import SOURCE_AURA, SOURCE_MANUAL, CommandHandlers
from auragrow.services import RequestGuard
from auragrow.services.portfolio import CacheInfo, PrincipalResult, RefetchResult, Strategy, StrategyBucket


def _settings() -> Settings:
    return Settings(
        telegram_token="DUMMY",
        aura_api_key="secret",
        cache_path="",
        manual_principal_usd=1000,
        default_rate_pct=11,
        default_years=30,
        max_years=35,
    )


def _message():
    return SimpleNamespace(reply_text=AsyncMock(), reply_photo=AsyncMock())


class CommandHandlersTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.gateway = SimpleNamespace(
            get_principal=AsyncMock(return_value=PrincipalResult(principal=1500, cached=False, response_time_ms=42)),
            get_strategies=AsyncMock(return_value=StrategyBucket()),
            refetch=AsyncMock(),
            get_cache_info=MagicMock(return_value=CacheInfo(balances_at=None, strategies_at=None)),
        )
        self.handlers = CommandHandlers(self.gateway, _settings())
        self.message = _message()
        self.update = SimpleNamespace(message=self.message)
        self.chat_data = {}

    def _context(self, *args):
        return SimpleNamespace(args=list(args), chat_data=self.chat_data)

    def _reply(self) -> str:
        return self.message.reply_text.await_args.args[0]


class BalanceCommandTests(CommandHandlersTestCase):
    async def test_loads_principal_from_aura(self):
        await self.handlers.balance(self.update, self._context("0xabc"))

        self.gateway.get_principal.assert_awaited_once_with("0xabc", "secret")
        assert self.chat_data["principal"] == 1500
        assert self.chat_data["source"] == SOURCE_AURA
        assert self.chat_data["address"] == "0xabc"
        assert "$1,500.00" in self._reply()
        assert "42 ms" in self._reply()
        assert not self.chat_data["guard"].in_flight

    async def test_cached_result_is_flagged(self):
        self.gateway.get_principal.return_value = PrincipalResult(principal=10, cached=True, response_time_ms=0)
        await self.handlers.balance(self.update, self._context("0xabc"))
        assert self.chat_data["cached"] is True
        assert "(cached)" in self._reply()

    async def test_unknown_shape_falls_back_to_manual_amount(self):
        self.gateway.get_principal.return_value = PrincipalResult(principal=None, cached=False, response_time_ms=5)
        await self.handlers.balance(self.update, self._context("0xabc"))
        assert self.chat_data["principal"] == 1000
        assert self.chat_data["source"] == SOURCE_MANUAL

    async def test_remote_error_offers_recovery_options(self):
        self.gateway.get_principal.side_effect = RemoteError("https://aura", status_code=502, reason="Bad Gateway")
        await self.handlers.balance(self.update, self._context("0xabc"))

        text = self._reply()
        assert "502" in text
        assert "/retry" in text and "/manual" in text
        assert "principal" not in self.chat_data
        assert not self.chat_data["guard"].in_flight

    async def test_rejects_submission_while_in_flight(self):
        guard = RequestGuard()
        guard.start("0xabc")
        self.chat_data["guard"] = guard

        await self.handlers.balance(self.update, self._context("0xabc"))
        self.gateway.get_principal.assert_not_awaited()
        assert "Still loading" in self._reply()

    async def test_missing_address_shows_usage(self):
        await self.handlers.balance(self.update, self._context())
        self.gateway.get_principal.assert_not_awaited()
        assert "Usage" in self._reply()

    async def test_retry_reuses_last_address(self):
        self.chat_data["address"] = "0xabc"
        await self.handlers.retry(self.update, self._context())
        self.gateway.get_principal.assert_awaited_once_with("0xabc", "secret")

    async def test_update_without_message_is_ignored(self):
        await self.handlers.balance(SimpleNamespace(message=None), self._context("0xabc"))
        self.gateway.get_principal.assert_not_awaited()


class ManualCommandTests(CommandHandlersTestCase):
    async def test_defaults_to_configured_amount(self):
        await self.handlers.manual(self.update, self._context())
        assert self.chat_data["principal"] == 1000
        assert self.chat_data["source"] == SOURCE_MANUAL

    async def test_accepts_custom_amount(self):
        await self.handlers.manual(self.update, self._context("2,500"))
        assert self.chat_data["principal"] == 2500

    async def test_rejects_non_positive_amount(self):
        for raw in ("0", "-5", "abc", "nan"):
            await self.handlers.manual(self.update, self._context(raw))
            assert "principal" not in self.chat_data


class ProjectCommandTests(CommandHandlersTestCase):
    async def test_sends_chart_with_summary(self):
        self.chat_data.update({"principal": 1000, "source": SOURCE_AURA, "cached": False})
        await self.handlers.project(self.update, self._context("11", "30"))

        self.message.reply_photo.assert_awaited_once()
        kwargs = self.message.reply_photo.await_args.kwargs
        assert kwargs["photo"].getvalue().startswith(b"\x89PNG")
        assert "$4,300.00" in kwargs["caption"]
        assert "$22,892.30" in kwargs["caption"]
        assert "Loaded from AURA" in kwargs["caption"]

    async def test_years_are_clamped(self):
        self.chat_data.update({"principal": 1000, "source": SOURCE_MANUAL})
        await self.handlers.project(self.update, self._context("4%", "99"))
        caption = self.message.reply_photo.await_args.kwargs["caption"]
        assert "35 years" in caption
        assert "4.00%" in caption

    async def test_overflowing_projection_falls_back_to_text(self):
        self.chat_data.update({"principal": 1000, "source": SOURCE_MANUAL})
        await self.handlers.project(self.update, self._context("1e20", "30"))

        self.message.reply_photo.assert_not_awaited()
        text = self._reply()
        assert "Growth Projection" in text
        assert "N/A" in text

    async def test_requires_principal(self):
        await self.handlers.project(self.update, self._context())
        self.message.reply_photo.assert_not_awaited()
        assert "/balance" in self._reply()

    async def test_rejects_invalid_arguments(self):
        self.chat_data["principal"] = 1000
        await self.handlers.project(self.update, self._context("fast"))
        self.message.reply_photo.assert_not_awaited()
        assert "Usage" in self._reply()


class StrategyAndRefreshTests(CommandHandlersTestCase):
    async def test_strategies_are_grouped_by_risk(self):
        self.chat_data["address"] = "0xabc"
        self.gateway.get_strategies.return_value = StrategyBucket(
            low=[Strategy(name="Stake ETH", apy="3.5%", platforms=("Lido",), description="Liquid staking.")],
            high=[Strategy(name="Leverage loop")],
        )
        await self.handlers.strategies(self.update, self._context())

        text = self._reply()
        assert "Low risk" in text and "High risk" in text
        assert "Moderate risk" not in text
        assert "Stake ETH — APY 3.5% (Lido)" in text

    async def test_empty_strategies_message(self):
        self.chat_data["address"] = "0xabc"
        await self.handlers.strategies(self.update, self._context())
        assert "No strategy suggestions" in self._reply()

    async def test_refresh_updates_principal(self):
        self.chat_data.update({"address": "0xabc", "principal": 10, "source": SOURCE_MANUAL})
        self.gateway.refetch.return_value = RefetchResult(
            principal=2000, strategies=StrategyBucket(), response_time_ms=120
        )
        await self.handlers.refresh(self.update, self._context())

        self.gateway.refetch.assert_awaited_once_with("0xabc", "secret")
        assert self.chat_data["principal"] == 2000
        assert self.chat_data["source"] == SOURCE_AURA
        assert "120 ms" in self._reply()

    async def test_refresh_keeps_principal_when_balance_unavailable(self):
        self.chat_data.update({"address": "0xabc", "principal": 10, "source": SOURCE_MANUAL})
        self.gateway.refetch.return_value = RefetchResult(principal=None, strategies=StrategyBucket(), response_time_ms=3)
        await self.handlers.refresh(self.update, self._context())
        assert self.chat_data["principal"] == 10
        assert "Balance unavailable" in self._reply()

    async def test_cacheinfo_reports_never_before_fetch(self):
        self.chat_data["address"] = "0xabc"
        await self.handlers.cacheinfo(self.update, self._context())
        assert "never" in self._reply()


if __name__ == "__main__":
    unittest.main()
