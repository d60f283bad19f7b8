"""
main.py

FastAPI 애플리케이션 진입점(Entry Point).

이 파일은 서버 실행 시 가장 먼저 로드되며,
애플리케이션 전반의 설정과 라우터 등록을 담당한다.

주요 역할:
- FastAPI 앱 인스턴스 생성
- 로깅 설정 및 외부 서비스 클라이언트(파일 저장소, 결제, Google 로그인) 생성
- CORS 미들웨어 설정
- 공통 에러 응답 형식 {message, error?} 처리
- 각 도메인별 라우터(auth, catalog, content, projects, customer, payment, admin) 등록
- /uploads 정적 파일 제공
- 헬스 체크 및 DB 연결 상태 확인용 엔드포인트 제공

설계 원칙:
- 비즈니스 로직은 포함하지 않고 설정/조립 역할만 수행
- 외부 서비스 클라이언트는 lifespan 에서 한 번 만들어 app.state 에 보관
- 운영 환경에서는 에러 응답에 스택 트레이스를 싣지 않음

관련 파일:
- app.core.config        : 환경 변수 및 설정 로드
- app.core.deps          : DB 세션 / 클라이언트 의존성
- app.core.logging       : structlog 설정
- app.routers.*          : 기능별 API 라우터

"""

import traceback
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.core.config import settings
from app.core.deps import get_db
from app.core.logging import configure_logging
from app.routers import admin, auth, catalog, content, customer, payment, projects
from app.services.identity import GoogleIdentityVerifier
from app.services.payment_gateway import RazorpayGateway
from app.services.storage import build_file_store

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    app.state.file_store = build_file_store(settings)
    app.state.payment_gateway = RazorpayGateway(
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    app.state.identity_verifier = GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)

    logger.info("app_started", environment=settings.ENVIRONMENT, storage=settings.STORAGE_BACKEND)
    yield
    logger.info("app_stopped")


app = FastAPI(title="StudyHub Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


"""
공통 에러 응답

- HTTPException: detail 이 문자열이면 message, dict 면 그대로 사용
- 요청 검증 실패: 400 + 필드별 오류
- 처리되지 않은 예외: 500, 운영 환경이 아니면 error 에 원인 / 스택 포함

"""

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        body = exc.detail
    else:
        body = {"message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation error", "error": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", path=request.url.path, error=repr(exc))
    body = {"message": "Internal server error"}
    if not settings.is_production:
        body["error"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=body)


app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(catalog.router, prefix=settings.API_PREFIX)
app.include_router(content.router, prefix=settings.API_PREFIX)
app.include_router(projects.router, prefix=settings.API_PREFIX)
app.include_router(customer.router, prefix=settings.API_PREFIX)
app.include_router(payment.router, prefix=settings.API_PREFIX)
app.include_router(admin.router, prefix=settings.API_PREFIX)


"""
업로드 파일 정적 제공

- 확장자 기준으로 Content-Type 을 고정
- 브라우저의 MIME 추측 / 스크립트 실행 차단 헤더 추가

"""

UPLOAD_MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}


class UploadFiles(StaticFiles):
    def file_response(self, full_path, stat_result, scope, status_code=200):
        response = super().file_response(full_path, stat_result, scope, status_code)
        suffix = str(full_path).rsplit(".", 1)[-1].lower() if "." in str(full_path) else ""
        media_type = UPLOAD_MEDIA_TYPES.get(f".{suffix}")
        if media_type:
            response.headers["content-type"] = media_type
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response


app.mount("/uploads", UploadFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


"""
서버 헬스 체크 엔드포인트

- 애플리케이션 프로세스가 정상 동작 중인지 확인
- 로드밸런서 / 배포 환경에서 서버 상태 확인 용도

"""
@app.get("/health")
def health():
    return {"status": "ok"}

"""
데이터베이스 연결 상태 확인 엔드포인트

- 간단한 SELECT 1 쿼리를 통해 DB 연결 여부 확인
- 서버는 살아 있으나 DB가 죽은 상황을 분리해서 감지 가능

"""
@app.get("/db-ping")
def db_ping(db: Session = Depends(get_db)):
    value = db.execute(text("SELECT 1")).scalar_one()
    return {"db": "ok", "value": value}
