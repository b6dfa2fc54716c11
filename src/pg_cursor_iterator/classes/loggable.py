import logging

from ..utils.general import setup_logger


class Loggable(object):
    """Mixin holding the per-instance logger and the helpers that standardize the log format."""

    enable_logging:bool                                     # Specify whether to enable logging for this instance
    logger:logging.Logger                                   # Logger for debug/info/etc


    def _setup_logging(
            self,
            enable_logging:bool,
            log_file_path:str,
            logger_name:str,
            logger_min_level:int,
            logger_format:str,
        ) -> None:
        """Sets [self.enable_logging] and, if enabled, inits [self.logger]."""

        self.enable_logging = enable_logging

        # Setup logging if configured
        if enable_logging:
            self.logger = setup_logger(
                log_file_path=log_file_path,
                logger_name=logger_name,
                min_level=logger_min_level,
                log_format=logger_format,
            )


    # ---- Helper functions for standardizing logging ---- #
    def _log(
        self,
        level:int,
        fmt:str,
        *args,
        exc:BaseException|None=None,
        stacklevel:int=2,
    ) -> None:
        """Helper func to standardize logging format (or do nothing if not [self.enable_logging] or not [self.logger]).
        Log format is: "[calling_function]: [message|Exception]" """

        # Check if enable logging is True
        if not getattr(self, "enable_logging", False): return

        # Make sure self.logger is not None
        logger:logging.Logger = getattr(self, "logger", None)
        if logger is None: return

        # Write to the log
        logger.log(level, fmt, *args, exc_info=exc, stacklevel=stacklevel)


    def log_debug(self, calling_func:str, message:str, stacklevel:int=2) -> None:
        """Logs a DEBUG message."""
        self._log(logging.DEBUG, "%s: %s", calling_func, message, stacklevel=stacklevel)


    def log_warning(self, calling_func:str, message:str, stacklevel:int=2) -> None:
        """Logs a WARNING message."""
        self._log(logging.WARNING, "%s error (non-critical): %s", calling_func, message, stacklevel=stacklevel)


    def log_error(self, calling_func:str, exception:BaseException, stacklevel:int=2) -> None:
        """Logs an ERROR message."""
        self._log(logging.ERROR, "%s failed: %s - %s", calling_func, type(exception).__name__, exception, exc=exception, stacklevel=stacklevel)
