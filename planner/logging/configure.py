import logging

import coloredlogs

from planner.logging.logging_filters import ReplaceFilter

LOG_FORMAT = "%(asctime)s.%(msecs)03d - [%(filename)s:%(lineno)d] - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    token: str,
    log_file: None | str,
    is_debug: bool = False,
    is_prod: bool = False,
):
    level = logging.DEBUG if is_debug else logging.INFO

    if is_prod:
        logging.basicConfig(
            format=LOG_FORMAT,
            level=level,
            filename=log_file,
            encoding="utf-8",
            datefmt=DATE_FORMAT,
        )
    else:
        coloredlogs.install(
            fmt=LOG_FORMAT,
            level=level,
            stream=open(log_file, "a", encoding="utf-8") if log_file else None,
            isatty=log_file is None,
            datefmt=DATE_FORMAT,
        )

    # request urls contain the token
    logging.getLogger("httpx").addFilter(ReplaceFilter(token, "<censored token>"))
    logging.getLogger("httpx").setLevel(logging.WARNING if not is_debug else logging.DEBUG)
