#!/usr/bin/env python3
"""
Script Base - Common infrastructure for catalog CLI scripts

Provides a base class that handles:
- Path setup so scripts can import the backend modules
- Logging configuration (stdout + file)
- Argument parsing with common options
- Header/summary output with consistent formatting

Usage:
    from script_base import ScriptBase, run_script

    def main():
        script = ScriptBase(name="my_script", description="Does something useful")
        script.add_debug_arg()
        args = script.parse_args()

        script.print_header({"OFFLINE": args.offline})
        ...
        script.print_summary(stats)
        return True

    if __name__ == "__main__":
        run_script(main)
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import Callable, Optional

# Add backend directory to path for imports (do this immediately)
sys.path.insert(0, str(Path(__file__).parent.parent))


class ScriptBase:
    """Common CLI script infrastructure"""

    def __init__(
        self,
        name: str,
        description: str,
        epilog: str = "",
        log_dir: Optional[Path] = None,
        log_to_file: bool = True
    ):
        """
        Args:
            name: Script name (used for log file naming)
            description: Script description for --help
            epilog: Additional help text (examples, etc.)
            log_dir: Directory for log files (default: scripts/log/)
            log_to_file: Also write the log to <log_dir>/<name>.log
        """
        self.name = name
        self.log_dir = log_dir or Path(__file__).parent / 'log'
        self.logger = self._setup_logging(log_to_file)
        self.parser = argparse.ArgumentParser(
            description=description,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=epilog
        )

    def _setup_logging(self, log_to_file: bool) -> logging.Logger:
        handlers = [logging.StreamHandler(sys.stdout)]
        if log_to_file:
            self.log_dir.mkdir(exist_ok=True)
            handlers.append(logging.FileHandler(self.log_dir / f'{self.name}.log'))

        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s',
            handlers=handlers
        )
        return logging.getLogger(self.name)

    # =========================================================================
    # Common Arguments
    # =========================================================================

    def add_debug_arg(self):
        self.parser.add_argument(
            '--debug',
            action='store_true',
            help='Enable debug logging'
        )

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command line arguments and apply --debug if present"""
        parsed = self.parser.parse_args(args)

        if getattr(parsed, 'debug', False):
            logging.getLogger().setLevel(logging.DEBUG)
            self.logger.debug("Debug logging enabled")

        return parsed

    # =========================================================================
    # Output Formatting
    # =========================================================================

    def print_header(self, modes: dict = None, title: str = None):
        """
        Print a formatted header with optional mode indicators.

        Args:
            modes: Dict of mode_name -> is_active (e.g., {"OFFLINE": True})
            title: Custom title (default: script name formatted)
        """
        title = title or self.name.replace('_', ' ').title()

        self.logger.info("=" * 80)
        self.logger.info(title)
        self.logger.info("=" * 80)

        for mode_name, is_active in (modes or {}).items():
            if is_active:
                self.logger.info(f"*** {mode_name} MODE ***")

        self.logger.info("")

    def print_summary(self, stats: dict, title: str = "SUMMARY"):
        """Print operation statistics, one aligned line per entry"""
        self.logger.info("")
        self.logger.info("=" * 80)
        self.logger.info(title)
        self.logger.info("=" * 80)

        if stats:
            max_key_len = max(len(str(k)) for k in stats.keys())
            for key, value in stats.items():
                display_key = key.replace('_', ' ').title()
                self.logger.info(f"{display_key:<{max_key_len + 5}} {value}")

        self.logger.info("=" * 80)


def run_script(main_func: Callable[[], bool]):
    """
    Run a script's main function with standard exception handling.

    Args:
        main_func: Function that returns True on success, False on failure
    """
    try:
        success = main_func()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\nCancelled by user")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)
