"""
config.py

애플리케이션 전역 설정(Configuration) 관리 파일.

이 파일은 .env 환경 변수들을 Pydantic BaseSettings를 통해 로드하여
애플리케이션 전반에서 공통으로 사용하는 설정 값을 제공한다.

주요 설정 항목:
- 데이터베이스 연결 정보
- JWT 인증 관련 시크릿 및 만료 정책
- 파일 저장소(local / Google Drive) 및 업로드 제한
- 결제 게이트웨이(Razorpay) 키
- Google OAuth 클라이언트 ID
- CORS 허용 도메인 목록

설계 원칙:
- 모든 환경 변수는 이 파일을 통해서만 접근
- 로컬 / 테스트 / 운영 환경을 .env로 분리하여 관리
- 설정 값은 런타임 중 변경되지 않는 불변 객체로 취급

관련 파일:
- app.main               : CORS / 로깅 / 저장소 초기화 시 설정 사용
- app.core.security      : JWT 시크릿 / 만료 설정 사용
- app.db.session         : DATABASE_URL 사용
- app.services.storage   : 업로드 경로 / Drive 설정 사용
- app.services.payment_gateway : Razorpay 키 사용

"""

from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


# .env 파일에 정의된 환경 변수를 로드하는 설정 클래스
# extra="ignore" 옵션으로 정의되지 않은 환경 변수는 무시
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENVIRONMENT: Literal["development", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str
    TEST_DATABASE_URL: str | None = None

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 12

    API_PREFIX: str = "/api"

    # CORS 허용 도메인 (프론트엔드 주소)
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # 파일 저장소
    # - STORAGE_BACKEND: "drive"면 본 파일은 Google Drive, 썸네일은 항상 로컬
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_MB: int = 100
    STORAGE_BACKEND: Literal["local", "drive"] = "local"
    GOOGLE_DRIVE_FOLDER_ID: str | None = None
    GOOGLE_SERVICE_ACCOUNT_FILE: str | None = None

    # Google 로그인(ID 토큰 audience)
    GOOGLE_CLIENT_ID: str = ""

    # 결제 게이트웨이
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    PAYMENT_CURRENCY: str = "INR"

    # 외부 API 호출 타임아웃(초)
    HTTP_TIMEOUT_SECONDS: float = 15.0

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024


# 애플리케이션 전역에서 import하여 사용하는 Settings 인스턴스
# 실행 시 한 번만 생성됨
settings = Settings()
