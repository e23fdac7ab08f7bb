"""Command-line entry point for the ladder allocation engine.

Builds a buy or sell ladder from a plan configuration, loads the plan's
trades from a CSV file, reconciles them against the ladder and prints the
per-level report, a summary, and alert statuses against a live price.

Configuration:
- Supports external XML configuration files (default)
- Also supports YAML/JSON
- Default configuration file: config.xml
- Use --config to specify a custom configuration file
"""

import argparse
import logging
import os
import sys
from datetime import datetime

import pandas as pd

from ladder_engine.adapters import CsvTradeHistory_Impl, TradeHistoryError
from ladder_engine.analysis import (
    classify_levels, is_cycle_top_breached,
    buy_fill_table, sell_fill_table, fill_summary,
)
from ladder_engine.config import load_config, print_config, ConfigPlanProvider, PlannerConfig
from ladder_engine.core.types import Side
from ladder_engine.fills import compute_buy_fills
from ladder_engine.ladder import build_buy_levels
from ladder_engine.runner import FillTracker


# Default configuration path
DEFAULT_CONFIG_PATH = "config.xml"


def resolve_output_path(path: str, default_filename: str) -> str:
    """将文件夹路径解析为完整的文件路径。

    如果提供的路径是文件夹（已存在、以/结尾或没有扩展名），
    则自动生成带时间戳的文件名；否则确保父目录存在后直接返回。
    """
    if not path:
        return path

    is_directory = os.path.isdir(path) or path.endswith(os.sep) or path.endswith('/')
    if not is_directory and not os.path.isfile(path):
        _, ext = os.path.splitext(path)
        if not ext:
            is_directory = True

    if is_directory:
        os.makedirs(path, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return os.path.join(path, f"{default_filename}_{timestamp}.log")

    dir_path = os.path.dirname(path)
    if dir_path:
        os.makedirs(dir_path, exist_ok=True)
    return path


def setup_logging(config: PlannerConfig) -> str:
    """Setup logging configuration from config.

    Returns:
        实际使用的日志文件路径（如果配置了日志文件），否则返回空字符串
    """
    log_file = None
    if config.logging.log_file:
        log_file = resolve_output_path(config.logging.log_file, "ladder_log")

    log_level = logging.DEBUG if config.logging.debug else getattr(logging, config.logging.level, logging.INFO)

    handlers = []
    if config.logging.console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        ))
        handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    if not handlers:
        handlers.append(logging.NullHandler())
    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    if not config.logging.debug:
        logging.getLogger('ladder_engine.fills.buy_engine').setLevel(logging.WARNING)
        logging.getLogger('ladder_engine.fills.sell_engine').setLevel(logging.WARNING)

    return log_file or ""


def load_trades(config: PlannerConfig, side: Side):
    """Load trades for the configured plan, empty when no trade file is set."""
    if not config.data.trades_path:
        return []
    history = CsvTradeHistory_Impl(config.data.trades_path)
    plan_id = str(config.data.plan_id) if config.data.plan_id != "" else None
    return history.get_trades(plan_id, side)


def run_buy(config: PlannerConfig, live_price=None) -> pd.DataFrame:
    """Build the buy ladder and reconcile buy trades against it."""
    levels = build_buy_levels(
        config.buy.top_price,
        config.buy.budget,
        config.buy.depth_profile,
        config.buy.growth_pct_per_level,
    )
    if not levels:
        print("Buy plan needs a positive top_price and budget.")
        return pd.DataFrame()

    trades = load_trades(config, Side.BUY)
    result = compute_buy_fills(levels, trades, config.buy.tolerance)
    statuses = classify_levels(
        [lv.price for lv in levels], result.fill_pct, live_price,
        config.alerts.buy_near_pct, config.alerts.filled_threshold,
    )
    table = buy_fill_table(levels, result, statuses)

    print("\n[Buy Ladder]")
    print(table.to_string(index=False))
    print("\n[Summary]")
    for key, value in fill_summary(result).items():
        print(f"  {key}: {value}")
    if is_cycle_top_breached(config.buy.top_price, live_price):
        print("\nLive price is above the plan top price.")
    return table


def run_sell(config: PlannerConfig, live_price=None) -> pd.DataFrame:
    """Build the sell ladder from the token pool and reconcile sell trades."""
    if not config.data.trades_path:
        print("Sell ladder needs data.trades_path (the token pool comes from buy trades).")
        return pd.DataFrame()

    history = CsvTradeHistory_Impl(config.data.trades_path)
    plan_id = str(config.data.plan_id)
    tracker = FillTracker.from_plan(plan_id or None, Side.SELL, ConfigPlanProvider(config), history)
    if not tracker.levels:
        print("Need at least one on-plan buy (or sell.baseline_price) before generating a ladder.")
        return pd.DataFrame()

    result = tracker.on_trades_changed()
    statuses = classify_levels(
        [lv.target_price for lv in tracker.levels], result.fill_pct, live_price,
        config.alerts.sell_near_pct, config.alerts.filled_threshold,
    )
    table = sell_fill_table(tracker.levels, result, statuses)

    print(f"\n[Sell Ladder] pool={sum(lv.planned_tokens for lv in tracker.levels)}")
    print(table.to_string(index=False))
    print("\n[Summary]")
    for key, value in fill_summary(result).items():
        print(f"  {key}: {value}")
    return table


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Ladder allocation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Buy ladder report with default configuration (config.xml)
  python main.py buy

  # Sell ladder with a custom configuration and trade file
  python main.py sell --config plan.yaml --trades data/trades.csv --plan-id 42

  # Classify levels against a live price
  python main.py buy --live-price 81.2 --show-config
"""
    )

    parser.add_argument('side', choices=['buy', 'sell'], help='Which ladder to report')
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Print configuration before running'
    )
    parser.add_argument(
        '--trades', '-t',
        type=str,
        default=None,
        help='Override data.trades_path from configuration'
    )
    parser.add_argument(
        '--plan-id',
        type=str,
        default=None,
        help='Override data.plan_id from configuration'
    )
    parser.add_argument(
        '--live-price',
        type=float,
        default=None,
        help='Live price used to classify levels as FILLED / NEAR / PENDING'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Override logging.debug to enable debug logging'
    )
    parser.add_argument(
        '--log-file', '-l',
        type=str,
        default=None,
        help='Override logging.log_file to save logs to file'
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        print("Please create a configuration file or specify a valid path with --config")
        sys.exit(1)
    except ValueError as e:
        print(f"Error loading configuration: {e}")
        sys.exit(1)

    if args.trades is not None:
        config.data.trades_path = args.trades
    if args.plan_id is not None:
        config.data.plan_id = args.plan_id
    if args.debug:
        config.logging.debug = True
    if args.log_file is not None:
        config.logging.log_file = args.log_file

    actual_log_file = setup_logging(config)
    if args.show_config:
        print_config(config)
    if actual_log_file:
        print(f"Logs will be saved to: {actual_log_file}")

    try:
        if args.side == 'buy':
            run_buy(config, args.live_price)
        else:
            run_sell(config, args.live_price)
    except TradeHistoryError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
