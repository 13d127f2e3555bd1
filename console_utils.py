import logging
from enum import Enum
from typing import Optional
from colorama import Fore, Style

from custom_logging import OperationReport

class MessageLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"
    CRITICAL = "critical"


# (console colour, log level) per message level
_LEVEL_STYLES = {
    MessageLevel.INFO: (Fore.CYAN, logging.INFO),
    MessageLevel.SUCCESS: (Fore.GREEN, logging.INFO),
    MessageLevel.WARNING: (Fore.YELLOW, logging.WARNING),
    MessageLevel.ERROR: (Fore.RED, logging.ERROR),
    MessageLevel.DEBUG: (Fore.MAGENTA, logging.DEBUG),
    MessageLevel.CRITICAL: (Fore.RED + Style.BRIGHT, logging.CRITICAL),
}

_STATUS_LEVELS = {
    "completed": MessageLevel.SUCCESS,
    "skipped": MessageLevel.INFO,
    "failed": MessageLevel.ERROR,
}


class ConsoleMessenger:
    """Coloured console output for operators, mirrored to the backup logger"""

    def __init__(self, logger: Optional[logging.Logger] = None, enable_colors: bool = True):
        self.logger = logger
        self.enable_colors = enable_colors

    def _colorize(self, message: str, level: MessageLevel) -> str:
        if not self.enable_colors:
            return message
        color, _log_level = _LEVEL_STYLES[level]
        return f"{color}{message}{Style.RESET_ALL}"

    def print_colored(self, message: str, level: MessageLevel = MessageLevel.INFO) -> None:
        print(self._colorize(message, level))
        if self.logger:
            self.logger.log(_LEVEL_STYLES[level][1], message)

    def info(self, message: str) -> None:
        self.print_colored(message, MessageLevel.INFO)

    def success(self, message: str) -> None:
        self.print_colored(f"✓ {message}", MessageLevel.SUCCESS)

    def warning(self, message: str) -> None:
        self.print_colored(f"[WARNING] {message}", MessageLevel.WARNING)

    def error(self, message: str) -> None:
        self.print_colored(f"✗ {message}", MessageLevel.ERROR)

    def critical(self, message: str) -> None:
        self.print_colored(f"[CRITICAL ERROR] {message}", MessageLevel.CRITICAL)

    def debug(self, message: str) -> None:
        self.print_colored(f"[DEBUG] {message}", MessageLevel.DEBUG)

    def section_header(self, title: str) -> None:
        separator = "=" * len(title)
        self.print_colored(f"\n{separator}", MessageLevel.INFO)
        self.print_colored(title, MessageLevel.INFO)
        self.print_colored(separator, MessageLevel.INFO)

    def config_item(self, key: str, value, mask_value: bool = False) -> None:
        """Print one configuration entry, masking secrets"""
        display_value = "***" if mask_value and value else str(value) if value not in (None, "") else "(not set)"
        colored_value = self._colorize(display_value, MessageLevel.SUCCESS)
        print(f"  {key}: {colored_value}")

    def report(self, report: OperationReport) -> None:
        """Print the per-database outcome of a run"""
        self.section_header(f"Run report: {report.command}")
        if not report.records:
            self.warning("No databases were processed")
            return
        for record in report.records:
            level = _STATUS_LEVELS.get(record.status, MessageLevel.INFO)
            line = f"  {record.database:<30} {record.status:<10} {record.duration_seconds:7.2f}s"
            if record.failed:
                line += f"  stage={record.stage or 'unknown'}  {record.error}"
            self.print_colored(line, level)
        failures = len(report.failures)
        if failures:
            self.error(f"{failures} of {len(report.records)} operation(s) failed")
        else:
            self.success(f"All {len(report.records)} operation(s) succeeded")


_global_messenger: Optional[ConsoleMessenger] = None

def get_messenger() -> ConsoleMessenger:
    """Get the global messenger instance"""
    global _global_messenger
    if _global_messenger is None:
        _global_messenger = ConsoleMessenger()
    return _global_messenger

def configure_messenger(logger: Optional[logging.Logger] = None, enable_colors: bool = True) -> ConsoleMessenger:
    """Configure the global messenger with a logger"""
    global _global_messenger
    _global_messenger = ConsoleMessenger(logger=logger, enable_colors=enable_colors)
    return _global_messenger
