"""Centralized logging configuration for skill-composer."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "skill_composer"


def setup_logging(
	level: str | None = None,
	log_dir: str | Path | None = None,
	stream=None,
) -> logging.Logger:
	"""
	Set up logging with console and file handlers on the package logger.

	Args:
		level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or WARNING.
		log_dir: Directory for the rotating log file; no file handler when None
		stream: Console stream (default: stderr, stdout carries MCP traffic)

	Returns:
		Configured logger
	"""
	level = level or os.getenv("LOG_LEVEL", "WARNING")
	log_level = getattr(logging, level.upper(), logging.WARNING)

	logger = logging.getLogger(LOGGER_NAME)
	logger.setLevel(logging.DEBUG if log_dir else log_level)

	# Avoid duplicate handlers
	if logger.handlers:
		return logger

	detailed_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	)
	simple_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(message)s",
		datefmt="%H:%M:%S",
	)

	console_handler = logging.StreamHandler(stream or sys.stderr)
	console_handler.setLevel(log_level)
	console_handler.setFormatter(simple_formatter)
	logger.addHandler(console_handler)

	if log_dir:
		log_path = Path(log_dir)
		log_path.mkdir(parents=True, exist_ok=True)

		file_handler = RotatingFileHandler(
			log_path / f"{LOGGER_NAME}.log",
			maxBytes=10 * 1024 * 1024,  # 10 MB
			backupCount=5,
		)
		file_handler.setLevel(logging.DEBUG)  # File gets all logs
		file_handler.setFormatter(detailed_formatter)
		logger.addHandler(file_handler)

	return logger
