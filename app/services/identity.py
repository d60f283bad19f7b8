"""
services/identity.py

Google 로그인(ID 토큰) 검증기.

- google-auth 가 Google 공개키로 서명 / 만료 / issuer 를 검증
- audience 는 settings.GOOGLE_CLIENT_ID 와 일치해야 함
- 검증 실패 시 ValueError (라우터에서 401 로 변환)

"""

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token


class GoogleIdentityVerifier:
    def __init__(self, client_id: str):
        self.client_id = client_id
        self._request = google_requests.Request()

    def verify(self, credential: str) -> dict:
        if not self.client_id:
            raise ValueError("Google sign-in is not configured")
        claims = id_token.verify_oauth2_token(credential, self._request, self.client_id)
        if not claims.get("email"):
            raise ValueError("Google account has no email")
        return claims
