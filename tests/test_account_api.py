import logging
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import func, select

from app.auth.deps import get_notifier
from app.db import get_db, request_unit_of_work
from app.main import create_app
from app.models import Otp, OtpUseCase, User
from app.observability.logging import RequestIdFilter
from app.repos.otps import SqlOtpStore
from tests.conftest import auth_headers, mk_user

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def client(session_factory, sender):
    app = create_app()

    app.dependency_overrides[get_db] = request_unit_of_work(session_factory)
    app.dependency_overrides[get_notifier] = lambda: sender

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def _fresh_user(session_factory, uid) -> User:
    async with session_factory() as s:
        return await s.get(User, uid)


async def test_requires_authentication(client):
    r = await client.get("/account/me")
    assert r.status_code == 401

    r = await client.get("/account/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


async def test_me_returns_allow_listed_profile(client, db):
    uid = await mk_user(db, "me@x.test", password_hash="pbkdf2$hidden")

    r = await client.get("/account/me", headers=auth_headers(uid))

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["user"]["id"] == str(uid)
    assert body["user"]["email"] == "me@x.test"
    assert "password_hash" not in body["user"]
    assert "pbkdf2$hidden" not in r.text


async def test_unknown_user_is_404(client):
    r = await client.get("/account/me", headers=auth_headers(uuid.uuid4()))
    assert r.status_code == 404
    assert r.json() == {"detail": "User not found", "code": "user_not_found"}


async def test_enable_two_fa(client, db, session_factory, sender):
    uid = await mk_user(db, "on@x.test")

    r = await client.post("/account/2fa", json={"set_2fa": True}, headers=auth_headers(uid))

    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert (await _fresh_user(session_factory, uid)).two_fa is True
    assert sender.sent == []


async def test_disable_two_fa_round_trip(client, db, session_factory, sender):
    uid = await mk_user(db, "off@x.test", two_fa=True)
    headers = auth_headers(uid)

    r = await client.post("/account/2fa", json={"set_2fa": False}, headers=headers)
    assert r.status_code == 200
    assert (await _fresh_user(session_factory, uid)).two_fa is True
    assert len(sender.sent) == 1

    r = await client.post("/account/2fa/disable/verify", json={"token": sender.last_code()}, headers=headers)
    assert r.status_code == 200
    assert (await _fresh_user(session_factory, uid)).two_fa is False

    r = await client.post("/account/2fa/disable/verify", json={"token": sender.last_code()}, headers=headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Invalid OTP"


async def test_phone_verification_scenario(client, db, session_factory):
    uid = await mk_user(db, "phone@x.test")
    await SqlOtpStore(db).create(
        user_id=uid,
        code="123456",
        use_case=OtpUseCase.PHONE_VERIFICATION,
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=5),
    )
    await db.commit()
    headers = auth_headers(uid)

    r = await client.post("/account/phone/verify/confirm", json={"token": "123456"}, headers=headers)
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert (await _fresh_user(session_factory, uid)).is_phone_verified is True

    async with session_factory() as s:
        assert (await s.execute(select(func.count()).select_from(Otp))).scalar_one() == 0

    r = await client.post("/account/phone/verify/confirm", json={"token": "123456"}, headers=headers)
    assert r.status_code == 404
    assert r.json() == {"detail": "Invalid OTP", "code": "otp_invalid"}


@pytest.mark.parametrize("token", ["", "   ", "1" * 33])
async def test_malformed_token_is_invalid_otp(client, db, token):
    uid = await mk_user(db, f"malformed-{len(token)}@x.test")

    r = await client.post("/account/phone/verify/confirm", json={"token": token}, headers=auth_headers(uid))

    assert r.status_code == 404
    assert r.json() == {"detail": "Invalid OTP", "code": "otp_invalid"}


async def test_expired_token_response(client, db):
    uid = await mk_user(db, "late@x.test")
    await SqlOtpStore(db).create(
        user_id=uid,
        code="777777",
        use_case=OtpUseCase.PHONE_VERIFICATION,
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )
    await db.commit()

    r = await client.post("/account/phone/verify/confirm", json={"token": "777777"}, headers=auth_headers(uid))

    assert r.status_code == 404
    assert r.json() == {"detail": "Expired token", "code": "otp_expired"}


async def test_sms_failure_is_502_and_rolls_back(client, db, session_factory, sender):
    uid = await mk_user(db, "down@x.test")
    sender.fail = True

    r = await client.post("/account/phone/verify", headers=auth_headers(uid))

    assert r.status_code == 502
    async with session_factory() as s:
        assert (await s.execute(select(func.count()).select_from(Otp))).scalar_one() == 0


async def test_request_id_header_echoed(client, db):
    uid = await mk_user(db, "rid@x.test")
    r = await client.get("/account/me", headers={**auth_headers(uid), "X-Request-ID": "abc123"})
    assert r.headers["X-Request-ID"] == "abc123"


async def test_request_log_line_has_structured_fields(client, db, caplog):
    uid = await mk_user(db, "logged@x.test")

    caplog.handler.addFilter(RequestIdFilter())
    with caplog.at_level(logging.INFO, logger="app.request"):
        await client.get("/account/me", headers={**auth_headers(uid), "X-Request-ID": "rid-42"})

    rec = next(r for r in caplog.records if r.name == "app.request" and r.getMessage() == "request")
    assert rec.path == "/account/me"
    assert rec.method == "GET"
    assert rec.status == 200
    assert rec.user_id == str(uid)
    assert rec.request_id == "rid-42"


async def test_liveness(client):
    r = await client.get("/health/liveness")
    assert r.status_code == 200
    assert r.json() == {"alive": True}
