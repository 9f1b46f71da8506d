from datetime import datetime, timedelta, timezone

import jwt
import pytest

from kin_backend.auth.jwt_handler import (
    PURPOSE_ACCESS,
    PURPOSE_RESET,
    PURPOSE_VERIFY,
    create_token,
    decode_token,
)
from kin_backend.core.errors import CodeMismatch, TokenInvalid


def test_issue_code_token_embeds_hash_not_plaintext_code(tokens) -> None:
    token, code = tokens.issue_code_token(PURPOSE_VERIFY, 'member@example.com', version=1)

    claims = jwt.decode(token, options={'verify_signature': False})

    assert len(code) == 4
    assert code.isdigit()
    assert claims['email'] == 'member@example.com'
    assert claims['ver'] == 1
    assert claims['purpose'] == PURPOSE_VERIFY
    assert claims['code'] != code
    assert code not in token


def test_verify_accepts_token_just_before_expiry(tokens) -> None:
    ttl = timedelta(minutes=5)
    issued = datetime.now(timezone.utc) - ttl + timedelta(seconds=30)
    token, code = tokens.issue_code_token(PURPOSE_VERIFY, 'member@example.com', version=1, now=issued)

    claims = tokens.verify(token, PURPOSE_VERIFY)
    tokens.check_code(claims, code)

    assert claims['email'] == 'member@example.com'


def test_verify_rejects_token_just_after_expiry(tokens) -> None:
    ttl = timedelta(minutes=5)
    issued = datetime.now(timezone.utc) - ttl - timedelta(seconds=1)
    token, _ = tokens.issue_code_token(PURPOSE_VERIFY, 'member@example.com', version=1, now=issued)

    with pytest.raises(TokenInvalid):
        tokens.verify(token, PURPOSE_VERIFY)


def test_verify_token_is_not_accepted_by_reset_workflow(tokens) -> None:
    verify_token, _ = tokens.issue_code_token(PURPOSE_VERIFY, 'member@example.com', version=1)
    reset_token, _ = tokens.issue_code_token(PURPOSE_RESET, 'member@example.com', version=1)

    with pytest.raises(TokenInvalid):
        tokens.verify(verify_token, PURPOSE_RESET)
    with pytest.raises(TokenInvalid):
        tokens.verify(reset_token, PURPOSE_VERIFY)


def test_decode_rejects_wrong_purpose_even_with_matching_secret() -> None:
    token = create_token({'email': 'a@example.com', 'purpose': PURPOSE_RESET}, 'shared', 5)

    with pytest.raises(TokenInvalid):
        decode_token(token, 'shared', 'HS256', PURPOSE_VERIFY)


@pytest.mark.parametrize('token', ['', None, 'not-a-jwt', 'a.b.c'])
def test_verify_collapses_malformed_tokens_to_token_invalid(tokens, token) -> None:
    with pytest.raises(TokenInvalid):
        tokens.verify(token, PURPOSE_VERIFY)


def test_verify_rejects_tampered_signature(tokens) -> None:
    token = tokens.issue_access_token(1, 'member@example.com')
    forged = create_token({'sub': '1', 'purpose': PURPOSE_ACCESS}, 'someone-else', 60)

    assert tokens.verify(token, PURPOSE_ACCESS)['sub'] == '1'
    with pytest.raises(TokenInvalid):
        tokens.verify(forged, PURPOSE_ACCESS)


def test_check_code_rejects_wrong_code(tokens) -> None:
    token, code = tokens.issue_code_token(PURPOSE_RESET, 'member@example.com', version=3)
    claims = tokens.verify(token, PURPOSE_RESET)
    wrong = '0000' if code != '0000' else '1111'

    with pytest.raises(CodeMismatch):
        tokens.check_code(claims, wrong)


def test_max_age_matches_configured_ttl(tokens, app_settings) -> None:
    assert tokens.max_age(PURPOSE_VERIFY) == app_settings.jwt_verify_expire_minutes * 60
    assert tokens.max_age(PURPOSE_ACCESS) == app_settings.jwt_login_expire_minutes * 60
