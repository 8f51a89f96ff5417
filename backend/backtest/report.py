"""Report formatting for backtest results.

Outputs results to console (formatted tables), camelCase dicts for the
HTTP API, and JSON files.
"""

from __future__ import annotations

import orjson

from backtest.stats import BacktestResult


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(result: BacktestResult, last_trades: int = 10) -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print("  BACKTEST RESULTS - Technical Signal Generator")
        print("=" * 70)
        print(f"  Symbol: {result.symbol} ({result.market} {result.timeframe})")
        if result.equity:
            print(f"  Period: {result.equity[0].timestamp:%Y-%m-%d} → {result.equity[-1].timestamp:%Y-%m-%d}")

        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Initial balance: {result.initial_balance:,.2f}")
        print(f"  Final balance:   {result.final_balance:,.2f}")
        print(f"  Profit:          {result.profit:+,.2f} ({result.profit_percentage:+.2f}%)")
        print(f"  Trades:          {result.total_trades}")
        print(f"  Wins:            {result.wins}")
        print(f"  Losses:          {result.losses}")
        print(f"  Win rate:        {result.win_rate:.1f}%")
        print(f"  Profit factor:   {result.profit_factor:.2f}")
        print(f"  Max drawdown:    {result.max_drawdown:.2f}%")

        if result.trades:
            print("\n" + "-" * 70)
            print(f"  LAST {min(last_trades, result.total_trades)} TRADES")
            print("-" * 70)
            print(f"  {'Type':<6} {'Entry time':<17} {'Entry':>10} {'Exit':>10} {'Profit':>10} {'Result':>7}")
            for t in result.trades[-last_trades:]:
                print(
                    f"  {t.type:<6} {t.entry_time:%Y-%m-%d %H:%M} {t.entry_price:>10.5f} "
                    f"{t.exit_price:>10.5f} {t.profit:>+10.2f} {t.result:>7}"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(result: BacktestResult) -> dict:
        """Convert results to the camelCase shape served by the backtest route."""
        return {
            "symbol": result.symbol,
            "market": result.market,
            "timeframe": result.timeframe,
            "initialBalance": result.initial_balance,
            "finalBalance": result.final_balance,
            "profit": result.profit,
            "profitPercentage": result.profit_percentage,
            "trades": result.total_trades,
            "wins": result.wins,
            "losses": result.losses,
            "winRate": result.win_rate,
            "profitFactor": result.profit_factor,
            "maxDrawdown": result.max_drawdown,
            "equity": [
                {"timestamp": p.timestamp.isoformat(), "value": p.value}
                for p in result.equity
            ],
            "tradeSummary": [
                {
                    "type": t.type,
                    "entryTime": t.entry_time.isoformat(),
                    "exitTime": t.exit_time.isoformat() if t.exit_time else None,
                    "entryPrice": t.entry_price,
                    "exitPrice": t.exit_price,
                    "profit": t.profit,
                    "result": t.result,
                }
                for t in result.trades
            ],
        }

    @staticmethod
    def save_json(result: BacktestResult, filepath: str) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(result)
        with open(filepath, "wb") as f:
            f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        print(f"\nResults saved to {filepath}")
