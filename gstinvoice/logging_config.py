import logging
import logging.handlers
import os

APP_LOGGER = 'gstinvoice'

CONSOLE_FORMAT = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
FILE_FORMAT = '[%(asctime)s] %(levelname)s in %(name)s.%(funcName)s:%(lineno)d: %(message)s'


def _rotating_handler(app, filename, level):
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(app.config['LOG_DIR'], filename),
        maxBytes=app.config.get('LOG_MAX_BYTES', 10 * 1024 * 1024),
        backupCount=app.config.get('LOG_BACKUP_COUNT', 10),
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def setup_logging(app):
    """
    Configure the ``gstinvoice`` logger tree for the application.

    Debug runs log everything to the console. Outside of tests, INFO and
    above go to ``gstinvoice.log`` and WARNING and above are duplicated in
    ``gstinvoice_errors.log``, both rotated under ``LOG_DIR``.
    """
    log_level = logging.DEBUG if app.config.get('DEBUG') else logging.INFO

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(log_level)
    app_logger.handlers.clear()
    app.logger.setLevel(log_level)

    if app.config.get('DEBUG'):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        app_logger.addHandler(console_handler)

    if app.config.get('TESTING'):
        return app_logger

    os.makedirs(app.config['LOG_DIR'], exist_ok=True)
    app_logger.addHandler(_rotating_handler(app, 'gstinvoice.log', log_level))
    app_logger.addHandler(_rotating_handler(app, 'gstinvoice_errors.log', logging.WARNING))
    app.logger.handlers = app_logger.handlers

    app_logger.info(f"GST invoice app started (debug={app.config.get('DEBUG', False)})")
    return app_logger


def get_logger(name=APP_LOGGER):
    """Logger nested under the application logger."""
    if name != APP_LOGGER and not name.startswith(APP_LOGGER + '.'):
        name = f'{APP_LOGGER}.{name}'
    return logging.getLogger(name)
