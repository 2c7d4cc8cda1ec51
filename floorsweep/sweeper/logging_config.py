"""
Logging configuration for the sweeper agent.

Implements structured logging with:
- Console output on stdout for progress messages
- Daily log rotation with retention
- Compression for files older than N days
- Separate error and activity logs
- Activity logging with key=value context
"""

import sys
import gzip
import shutil
import logging
from pathlib import Path
from datetime import datetime, timedelta
from typing import Optional
from logging.handlers import TimedRotatingFileHandler


class CompressingTimedRotatingFileHandler(TimedRotatingFileHandler):
    """
    Handler that gzips rotated log files older than compress_after_days.
    """

    def __init__(self, *args, compress_after_days: int = 7, **kwargs):
        super().__init__(*args, **kwargs)
        self.compress_after_days = compress_after_days

    def doRollover(self):
        super().doRollover()
        self._compress_old_logs()

    def _compress_old_logs(self):
        """Compress rotated files in the log directory past the age cutoff."""
        if not self.baseFilename:
            return

        log_dir = Path(self.baseFilename).parent
        log_basename = Path(self.baseFilename).name
        cutoff_date = datetime.now() - timedelta(days=self.compress_after_days)

        for log_file in log_dir.glob(f"{log_basename}.*"):
            if log_file.suffix == '.gz':
                continue

            try:
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    self._compress_file(log_file)
            except OSError as e:
                print(f"Error compressing {log_file}: {e}", file=sys.stderr)

    def _compress_file(self, file_path: Path):
        compressed_path = file_path.with_suffix(file_path.suffix + '.gz')

        try:
            with open(file_path, 'rb') as f_in:
                with gzip.open(compressed_path, 'wb') as f_out:
                    shutil.copyfileobj(f_in, f_out)
            file_path.unlink()
        except OSError as e:
            print(f"Failed to compress {file_path}: {e}", file=sys.stderr)
            if compressed_path.exists():
                compressed_path.unlink()


class StructuredFormatter(logging.Formatter):
    """
    Formatter that adds the component name and key=value context.
    """

    def format(self, record: logging.LogRecord) -> str:
        component = record.name.split('.')[-1] if '.' in record.name else record.name
        record.component = component

        formatted = super().format(record)

        if hasattr(record, 'extra_context'):
            context_str = ' | '.join(f"{k}={v}" for k, v in record.extra_context.items())
            formatted += f" | {context_str}"

        return formatted


def setup_logging(
    log_dir: str = "logs",
    log_level: str = "INFO",
    console_level: str = "INFO",
    enable_compression: bool = True,
    compress_after_days: int = 7,
    retention_days: int = 30,
) -> logging.Logger:
    """
    Set up logging for the sweeper agent.

    Args:
        log_dir: Directory for log files
        log_level: File logging level (DEBUG, INFO, WARNING, ERROR)
        console_level: Console logging level
        enable_compression: Whether to compress old log files
        compress_after_days: Days after which to compress logs
        retention_days: Days to retain log files

    Returns:
        Configured root logger
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    detailed_formatter = StructuredFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(component)-15s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_formatter = StructuredFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, console_level.upper()))
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    log_file = log_path / "sweeper.log"
    if enable_compression:
        file_handler = CompressingTimedRotatingFileHandler(
            filename=str(log_file),
            when='midnight',
            interval=1,
            backupCount=retention_days,
            compress_after_days=compress_after_days,
            encoding='utf-8',
        )
    else:
        file_handler = TimedRotatingFileHandler(
            filename=str(log_file),
            when='midnight',
            interval=1,
            backupCount=retention_days,
            encoding='utf-8',
        )
    file_handler.setLevel(getattr(logging, log_level.upper()))
    file_handler.setFormatter(detailed_formatter)
    file_handler.suffix = "%Y-%m-%d"
    root_logger.addHandler(file_handler)

    error_handler = TimedRotatingFileHandler(
        filename=str(log_path / "sweeper_errors.log"),
        when='midnight',
        interval=1,
        backupCount=retention_days,
        encoding='utf-8',
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    error_handler.suffix = "%Y-%m-%d"
    root_logger.addHandler(error_handler)

    activity_handler = TimedRotatingFileHandler(
        filename=str(log_path / "sweeper_activity.log"),
        when='midnight',
        interval=1,
        backupCount=retention_days,
        encoding='utf-8',
    )
    activity_handler.setLevel(logging.INFO)
    activity_handler.setFormatter(detailed_formatter)
    activity_handler.suffix = "%Y-%m-%d"
    logging.getLogger('sweeper.activity').addHandler(activity_handler)

    root_logger.info("=" * 80)
    root_logger.info("Sweeper Logging Initialized")
    root_logger.info(f"Log directory: {log_path.absolute()}")
    root_logger.info(f"Log level: {log_level} (console {console_level})")
    root_logger.info(f"Retention: {retention_days} days")
    root_logger.info("=" * 80)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context
):
    """
    Log a message with additional key=value context.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, logging.ERROR, etc.)
        message: Log message
        **context: Additional context key-value pairs
    """
    extra = {'extra_context': context} if context else {}
    logger.log(level, message, extra=extra)


class ActivityLogger:
    """
    Specialized logger for tracking decision-loop activity.

    Records tick completions, aggregation results, buy candidates, list
    decisions and errors in a structured, greppable format.
    """

    def __init__(self):
        self.logger = logging.getLogger('sweeper.activity')

    def log_tick(self, branch: str, duration: float, **context):
        """Log a completed timer tick."""
        log_with_context(
            self.logger,
            logging.INFO,
            f"Tick completed: {branch}",
            branch=branch,
            duration_seconds=f"{duration:.2f}",
            **context,
        )

    def log_aggregation(self, token: str, total_amount: int, threshold: int, deficit: bool, pages: int):
        log_with_context(
            self.logger,
            logging.INFO,
            "Listed supply aggregated",
            token=token,
            total_amount=total_amount,
            threshold=threshold,
            deficit=deficit,
            pages=pages,
        )

    def log_buy_evaluation(self, token: str, floor_price: int, price_index: int, listings: int, candidates: int):
        log_with_context(
            self.logger,
            logging.INFO,
            "Buy check evaluated",
            token=token,
            floor_price=floor_price,
            price_index=price_index,
            listings=listings,
            candidates=candidates,
        )

    def log_buy_candidate(self, page_index: int, amount: str, price: int, floor_price: int, account: str):
        log_with_context(
            self.logger,
            logging.INFO,
            "Buy candidate dispatched",
            page=page_index,
            amount=amount,
            price=price,
            floor_price=floor_price,
            account=account,
        )

    def log_list_decision(self, total_amount: int, threshold: int, accounts: int):
        log_with_context(
            self.logger,
            logging.INFO,
            "List addition dispatched",
            total_amount=total_amount,
            threshold=threshold,
            mint_accounts=accounts,
        )

    def log_error(
        self,
        component: str,
        error_type: str,
        error_message: str,
        **context
    ):
        """
        Log an error with context.

        Args:
            component: Component where error occurred
            error_type: Type of error
            error_message: Error message
            **context: Additional context
        """
        context.update({
            'component': component,
            'error_type': error_type,
        })
        log_with_context(
            self.logger,
            logging.ERROR,
            error_message,
            **context
        )


_activity_logger: Optional[ActivityLogger] = None


def get_activity_logger() -> ActivityLogger:
    """Get the global activity logger instance."""
    global _activity_logger
    if _activity_logger is None:
        _activity_logger = ActivityLogger()
    return _activity_logger
