"""CLI entry point for the trade journal.

Every command reads a JSON file of persisted trade documents, either a bare
list or ``{"trades": [...], "users": {"<userId>": "<display name>"}}``, and
prints its result as JSON on stdout.
"""

from __future__ import annotations

import json
import warnings
from collections import defaultdict
from datetime import datetime
from typing import Any

import click

from .core.config import Settings, load_settings
from .core.enums import BreakdownKey, LeaderboardWindow, TradeClass
from .core.errors import ConfigError, JournalError
from .observability.logger import new_request_id, setup_logging


def _load(ctx: click.Context, path: str) -> tuple[list[Any], dict[str, str]]:
    from .journal.documents import trades_from_documents

    with open(path, encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"{path}: invalid JSON ({exc})") from exc
    users: dict[str, str] = {}
    if isinstance(payload, dict):
        users = {str(k): str(v) for k, v in (payload.get("users") or {}).items()}
        payload = payload.get("trades", [])
    if not isinstance(payload, list):
        raise click.ClickException(f"{path}: expected a list of trade documents")
    try:
        trades = trades_from_documents(payload)
    except JournalError as exc:
        raise click.ClickException(str(exc)) from exc
    user = ctx.obj.get("user")
    if user:
        trades = [t for t in trades if t.user_id == user]
    return trades, users


def _emit(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=False))


def _parse_day(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter(f"not an ISO date: {value}") from exc


@click.group()
@click.option("--config", default=None, help="TOML config file path")
@click.option("--user", default=None, help="Only use trades of this userId")
@click.pass_context
def main(ctx: click.Context, config: str | None, user: str | None) -> None:
    """Trading journal P&L and analytics."""
    try:
        settings = load_settings(config) if config else Settings()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(settings.observability.log_level, settings.observability.log_format)
    new_request_id()
    ctx.obj = {"settings": settings, "user": user}


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def recompute(ctx: click.Context, path: str) -> None:
    """Recompute status and profitLoss of every trade from its fills."""
    from .journal.documents import state_to_document
    from .journal.pnl import compute_trade_state

    trades, _ = _load(ctx, path)
    out = []
    for trade in trades:
        state = compute_trade_state(trade)
        out.append({"id": trade.id, **state_to_document(state)})
    _emit(out)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", default=None, help="Earliest last-exit time (ISO)")
@click.option("--end", default=None, help="Exclusive latest last-exit time (ISO)")
@click.pass_context
def stats(ctx: click.Context, path: str, start: str | None, end: str | None) -> None:
    """Aggregate statistics over closed trades."""
    from .journal.aggregation import DateRange, compute_user_stats

    trades, _ = _load(ctx, path)
    date_range = None
    if start or end:
        date_range = DateRange(start=_parse_day(start), end=_parse_day(end))
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        result = compute_user_stats(trades, date_range)
    _emit(result.model_dump(mode="json", by_alias=True))


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--key",
    type=click.Choice([k.value for k in BreakdownKey]),
    default=BreakdownKey.PATTERN.value,
    help="Grouping key",
)
@click.option("--top", is_flag=True, help="Only the best groups meeting the sample threshold")
@click.pass_context
def breakdown(ctx: click.Context, path: str, key: str, top: bool) -> None:
    """Per-group statistics (pattern, session, hour, weekday, mistake)."""
    from .journal.aggregation import breakdown as compute_breakdown
    from .journal.aggregation import top_groups

    cfg = ctx.obj["settings"].analytics
    trades, _ = _load(ctx, path)
    groups = compute_breakdown(
        trades,
        BreakdownKey(key),
        tz=cfg.tzinfo,
        min_sample_size=cfg.min_sample_size,
    )
    if top:
        groups = top_groups(groups, limit=cfg.breakdown_limit)
    _emit([g.model_dump(mode="json", by_alias=True) for g in groups])


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-curve", is_flag=True, help="Omit the daily equity curve")
@click.pass_context
def drawdown(ctx: click.Context, path: str, no_curve: bool) -> None:
    """Drawdown and daily win/loss streaks."""
    from .journal.drawdown import compute_drawdown_and_streaks

    trades, _ = _load(ctx, path)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        report = compute_drawdown_and_streaks(
            trades, tz=ctx.obj["settings"].analytics.tzinfo
        )
    exclude = {"equity_curve"} if no_curve else None
    _emit(report.model_dump(mode="json", by_alias=True, exclude=exclude))


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--window",
    type=click.Choice([w.value for w in LeaderboardWindow]),
    default=LeaderboardWindow.ALL.value,
    help="Ranking window",
)
@click.pass_context
def leaderboard(ctx: click.Context, path: str, window: str) -> None:
    """Rank users by realized profit."""
    from .journal.leaderboard import TraderBook, compute_leaderboard

    trades, users = _load(ctx, path)
    by_user: dict[str, list] = defaultdict(list)
    for trade in trades:
        by_user[trade.user_id].append(trade)
    user_ids = list(users) + [u for u in by_user if u not in users]
    books = [
        TraderBook(
            user_id=uid,
            display_name=users.get(uid, uid),
            equity_trades=[t for t in by_user[uid] if t.trade_class == TradeClass.EQUITY.value],
            option_trades=[t for t in by_user[uid] if t.trade_class == TradeClass.OPTION.value],
        )
        for uid in user_ids
    ]
    board = compute_leaderboard(
        books, window, tz=ctx.obj["settings"].analytics.tzinfo
    )
    _emit(board.model_dump(mode="json", by_alias=True))


if __name__ == "__main__":
    main()
