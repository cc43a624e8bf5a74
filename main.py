#!/usr/bin/env python3
"""
Order report entry point for scheduled runners.

Cron jobs and CI schedulers run `python main.py` once a day; this hands off
to the click command with any extra arguments passed through.
"""

from orderbot.run import main as run_main


def main():
    """Run the daily orders report."""
    run_main(prog_name="orderbot")


if __name__ == '__main__':
    main()
