"""
Configuração de logging do serviço de manutenção.

Saída no console sempre ligada; um arquivo rotativo entra quando ``log_file``
está configurado. Cada módulo usa ``logging.getLogger(__name__)`` e herda
esta configuração.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# handlers instalados por setup_logging; os demais do root não são nossos
_installed_handlers: list[logging.Handler] = []


def _remove_installed_handlers(root_logger: logging.Logger) -> None:
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configura o logger raiz.

    Args:
        log_level: nome do nível, ex.: "INFO" ou "DEBUG"
        log_file: caminho opcional de um arquivo rotativo (10 MB, 5 backups)
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # app recriado (testes): troca só os handlers que este módulo instalou
    _remove_installed_handlers(root_logger)
    root_logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    root_logger.info("Logging configurado (nível=%s, arquivo=%s)", logging.getLevelName(level), log_file or "-")
