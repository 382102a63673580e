import logging
import math
import time
from typing import Any, Dict, List, Optional

from telegram import Message, Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from auragrow.config import Settings
from auragrow.errors import RemoteError
from auragrow.services import PortfolioGateway, RequestGuard, StrategyBucket, build_series, summarize_growth
from auragrow.utils import format_percent, format_time_ago, format_usd, format_years
from auragrow.utils.images import render_growth_chart

logger = logging.getLogger(__name__)

SOURCE_AURA = "AURA"
SOURCE_MANUAL = "Manual"
DISCLAIMER = "_Educational simulation. Not financial advice._"


class CommandHandlers:
    """Telegram command handlers wired into python-telegram-bot."""

    def __init__(self, gateway: PortfolioGateway, settings: Settings):
        self.gateway = gateway
        self.settings = settings

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        text = (
            "👋 *Welcome to Aura Grow!*\n\n"
            "Load your wallet balance from AURA and see how it would grow with "
            "simple versus compound interest.\n\n"
            "*Available commands*\n"
            "/balance <address> — Load your total balance from AURA\n"
            "/manual [amount] — Use a manual starting amount instead\n"
            "/project [rate] [years] — Compare simple and compound growth\n"
            "/strategies — Yield ideas grouped by risk\n"
            "/refresh — Reload balance and strategies, skipping the cache\n"
            "/retry — Retry the last address\n"
            "/cacheinfo — When your data was last fetched\n\n"
            f"{self._rate_presets_section()}\n\n"
            f"{DISCLAIMER}"
        )
        await message.reply_text(text, parse_mode="Markdown")

    async def balance(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        address = " ".join(context.args or []).strip()
        if not address:
            await message.reply_text("Usage: /balance <wallet address>", parse_mode=None)
            return
        await self._load_balance(message, context.chat_data, address)

    async def retry(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        address = context.chat_data.get("address")
        if not address:
            await message.reply_text("No address to retry yet. Use /balance <address> first.", parse_mode=None)
            return
        await self._load_balance(message, context.chat_data, address)

    async def manual(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        amount = self.settings.manual_principal_usd
        if context.args:
            amount = _parse_float(context.args[0])
            if amount is None or amount <= 0:
                await message.reply_text("Please provide a positive amount, e.g. /manual 2500", parse_mode=None)
                return
        self._set_principal(context.chat_data, amount, SOURCE_MANUAL, cached=False)
        await message.reply_text(
            f"✍️ Starting amount set to {format_usd(amount)} (manual).\nUse /project to explore growth.",
            parse_mode=None,
        )

    async def project(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        chat_data = context.chat_data
        principal = chat_data.get("principal")
        if principal is None:
            await message.reply_text(
                "Load a balance with /balance <address> or set one with /manual first.", parse_mode=None
            )
            return

        args = context.args or []
        rate = _parse_float(args[0].rstrip("%")) if len(args) > 0 else self.settings.default_rate_pct
        years_raw = _parse_float(args[1]) if len(args) > 1 else self.settings.default_years
        if rate is None or rate < 0 or years_raw is None:
            await message.reply_text("Usage: /project [rate %] [years], e.g. /project 11 30", parse_mode=None)
            return
        years = self.settings.clamp_years(int(years_raw))

        summary = summarize_growth(principal, rate, years)
        source = chat_data.get("source", SOURCE_MANUAL)
        badge = "Loaded from AURA" if source == SOURCE_AURA else "Manual amount"
        if chat_data.get("cached"):
            badge = f"{badge}, cached"
        text = (
            "📈 *Growth Projection*\n\n"
            f"• Starting amount: {format_usd(principal)} ({badge})\n"
            f"• Annual rate: {format_percent(rate)}\n"
            f"• Time period: {format_years(years)}\n\n"
            f"• Balance after {format_years(years)} (simple): {format_usd(summary.final_simple)}\n"
            f"• Balance after {format_years(years)} (compound): {format_usd(summary.final_compound)}\n"
            f"• Extra growth thanks to compounding: {format_usd(summary.uplift_abs)}\n"
            f"• Compounding advantage: {format_percent(summary.uplift_pct)}\n\n"
            f"{DISCLAIMER}"
        )

        try:
            chart = render_growth_chart(build_series(principal, rate, years))
            await message.reply_photo(photo=chart, caption=text, parse_mode="Markdown")
            return
        except (TelegramError, OSError, ValueError):
            logger.exception("Unable to send growth chart, falling back to text.")
        await message.reply_text(text, parse_mode="Markdown")

    async def strategies(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        address = context.chat_data.get("address")
        if not address:
            await message.reply_text("Use /balance <address> first to get strategy ideas.", parse_mode=None)
            return
        bucket = await self.gateway.get_strategies(address, self.settings.aura_api_key)
        await message.reply_text(self._render_strategies(bucket), parse_mode=None)

    async def refresh(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        chat_data = context.chat_data
        address = chat_data.get("address")
        if not address:
            await message.reply_text("Nothing to refresh yet. Use /balance <address> first.", parse_mode=None)
            return

        guard = self._guard(chat_data)
        if not guard.start(address):
            await message.reply_text("⏳ Still loading your previous request, please wait.", parse_mode=None)
            return
        try:
            result = await self.gateway.refetch(address, self.settings.aura_api_key)
        finally:
            guard.finish(address)

        lines = [f"🔄 Refreshed in {result.response_time_ms} ms"]
        if result.principal is not None:
            self._set_principal(chat_data, result.principal, SOURCE_AURA, cached=False)
            lines.append(f"• Balance: {format_usd(result.principal)}")
        else:
            lines.append("• Balance unavailable. Keeping your current starting amount.")
        lines.append("")
        lines.append(self._render_strategies(result.strategies))
        await message.reply_text("\n".join(lines), parse_mode=None)

    async def cacheinfo(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = await self._ensure_message(update)
        if not message:
            return
        address = context.chat_data.get("address")
        if not address:
            await message.reply_text("No address loaded yet.", parse_mode=None)
            return
        info = self.gateway.get_cache_info(address, self.settings.aura_api_key)
        now = int(time.time() * 1000)
        text = (
            "🗂 Cache status\n\n"
            f"• Balance fetched: {format_time_ago(info.balances_at, now)}\n"
            f"• Strategies fetched: {format_time_ago(info.strategies_at, now)}"
        )
        await message.reply_text(text, parse_mode=None)

    async def _load_balance(self, message: Message, chat_data: Dict[str, Any], address: str) -> None:
        guard = self._guard(chat_data)
        if not guard.start(address):
            await message.reply_text("⏳ Still loading your previous request, please wait.", parse_mode=None)
            return

        chat_data["address"] = address
        try:
            result = await self.gateway.get_principal(address, self.settings.aura_api_key)
        except RemoteError as exc:
            await message.reply_text(
                f"⚠️ {exc}\n\n"
                "/retry — Try again\n"
                f"/manual — Use {format_usd(self.settings.manual_principal_usd)} instead\n"
                "/balance <address> — Change address",
                parse_mode=None,
            )
            return
        finally:
            guard.finish(address)

        if result.principal is None:
            self._set_principal(chat_data, self.settings.manual_principal_usd, SOURCE_MANUAL, cached=False)
            await message.reply_text(
                "AURA returned data but no USD total could be found. "
                f"Using {format_usd(self.settings.manual_principal_usd)} as a manual starting amount.\n"
                "Use /manual <amount> to change it, or /project to continue.",
                parse_mode=None,
            )
            return

        self._set_principal(chat_data, result.principal, SOURCE_AURA, cached=result.cached)
        suffix = " (cached)" if result.cached else f" in {result.response_time_ms} ms"
        await message.reply_text(
            f"💰 Balance loaded from AURA{suffix}: {format_usd(result.principal)}\n"
            "Use /project [rate] [years] to explore growth.",
            parse_mode=None,
        )

    @staticmethod
    def _guard(chat_data: Dict[str, Any]) -> RequestGuard:
        guard = chat_data.get("guard")
        if guard is None:
            guard = RequestGuard()
            chat_data["guard"] = guard
        return guard

    @staticmethod
    def _set_principal(chat_data: Dict[str, Any], principal: float, source: str, cached: bool) -> None:
        chat_data["principal"] = principal
        chat_data["source"] = source
        chat_data["cached"] = cached

    async def _ensure_message(self, update: Update):
        if not update.message:
            return None
        return update.message

    def _rate_presets_section(self) -> str:
        lines = ["*Example rates*"]
        for preset in self.settings.rate_presets.values():
            lines.append(f"• {preset.rate_pct}% ({preset.label}): {preset.description}")
        return "\n".join(lines)

    @staticmethod
    def _render_strategies(bucket: StrategyBucket) -> str:
        if bucket.is_empty():
            return "No strategy suggestions available right now."
        lines: List[str] = ["🧭 Strategy ideas"]
        for title, strategies in (("Low risk", bucket.low), ("Moderate risk", bucket.moderate), ("High risk", bucket.high)):
            if not strategies:
                continue
            lines.append(f"\n{title}")
            for strategy in strategies:
                line = f"• {strategy.name}"
                if strategy.apy:
                    line += f" — APY {strategy.apy}"
                if strategy.platforms:
                    line += f" ({', '.join(strategy.platforms)})"
                lines.append(line)
                if strategy.description:
                    lines.append(f"  {strategy.description}")
        return "\n".join(lines)


def _parse_float(raw: str) -> Optional[float]:
    try:
        value = float(str(raw).replace(",", "").strip())
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None
