"""Allow running a replay as: python -m candle_core.backtest [--config path]."""

import argparse

from candle_core.backtest.runner import main

parser = argparse.ArgumentParser(description="Replay stored candles through the backtest exchange")
parser.add_argument("--config", default=None, help="Path to config.yaml")
args = parser.parse_args()
main(config_path=args.config)
