"""
Tests for logging configuration.
"""
import logging

from colorama import Fore, Style

from dbmcp.logging_setup import _HANDLER_TAG, ColorFormatter, configure_logging


class TestConfigureLogging:

    def test_level_and_console_handler(self, package_logger):
        configure_logging("debug", use_color=False)
        assert package_logger.level == logging.DEBUG
        assert any(isinstance(h, logging.StreamHandler) for h in package_logger.handlers)

    def test_unknown_level_falls_back_to_info(self, package_logger):
        configure_logging("chatty", use_color=False)
        assert package_logger.level == logging.INFO

    def test_repeated_calls_replace_handlers(self, package_logger):
        """Test that reconfiguring does not stack handlers."""
        configure_logging("INFO", use_color=False)
        configure_logging("INFO", use_color=False)
        installed = [h for h in package_logger.handlers if getattr(h, _HANDLER_TAG, False)]
        assert len(installed) == 1

    def test_log_file(self, package_logger, tmp_path):
        """Test that a log file (and its folder) is created and written."""
        log_file = tmp_path / "logs" / "dbmcp.log"
        configure_logging("INFO", log_file=log_file, use_color=False)

        logging.getLogger("dbmcp.tests").info("written to file")
        for handler in package_logger.handlers:
            handler.flush()

        assert "written to file" in log_file.read_text(encoding="utf-8")


class TestColorFormatter:

    def test_colors_by_level(self):
        formatter = ColorFormatter("%(message)s")
        record = logging.LogRecord("dbmcp", logging.WARNING, __file__, 1, "careful", None, None)
        assert formatter.format(record) == f"{Fore.YELLOW}careful{Style.RESET_ALL}"

    def test_error_is_red(self):
        formatter = ColorFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("dbmcp", logging.ERROR, __file__, 1, "boom", None, None)
        assert formatter.format(record).startswith(f"{Fore.RED}ERROR boom")
