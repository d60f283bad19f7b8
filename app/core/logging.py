"""
logging.py

structlog 기반 구조화 로깅 설정.

- 앱 시작 시 configure_logging()을 한 번 호출
- 각 모듈은 structlog.get_logger()로 로거를 얻어 key=value 형태로 기록
- 표준 logging 레벨은 settings.LOG_LEVEL을 따른다

"""

import logging

import structlog

from app.core.config import settings


def configure_logging() -> None:
    logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
