"""Tests for AuthService - registration, OTP login, password login, password flows."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.responses import Response

import auth.login_sessions as login_sessions_module
import auth.tokens as tokens_module
from auth.exceptions import (
    AccountInactiveError,
    BadRequestError,
    EmailAlreadyRegisteredError,
    EmailAlreadyVerifiedError,
    InternalError,
    InvalidCredentialsError,
    OtpMismatchError,
    PasswordMismatchError,
    SessionExpiredError,
    SessionNotFoundError,
    TokenExpiredError,
    UserNotFoundError,
    WeakPasswordError,
    WrongTokenTypeError,
)
from auth.security_logger import SecurityEvent
from auth.tokens import TokenPurpose
from auth.types import RegisterRequest, UserRole, UserStatus
from clients.email_client import EmailGatewayError
from utils.timezone import now_utc


def _register_request(email="a@example.com", password="Abc12345!", confirm=None, **overrides):
    data = {
        "name": "Ana",
        "last_name": "Rider",
        "email": email,
        "password": password,
        "confirm_password": password if confirm is None else confirm,
    }
    data.update(overrides)
    return RegisterRequest(**data)


def _sent_code(mock_email_client) -> str:
    return mock_email_client.send_login_code.call_args.kwargs["code"]


def _logged_events(mock_security_logger) -> list[SecurityEvent]:
    return [call.args[0] for call in mock_security_logger.log.call_args_list]


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegister:
    """Registration creates a PENDING, unverified account and sends mails."""

    def test_creates_pending_unverified_user(self, auth_service, users):
        user = auth_service.register(_register_request())

        assert user.status == UserStatus.PENDING
        assert user.email_verified is False
        assert user.role == UserRole.USER
        assert users.get_user_by_id(user.id) is not None

    def test_stores_hash_not_plaintext(self, auth_service, users, hasher):
        user = auth_service.register(_register_request(password="Abc12345!"))

        stored = users.get_user_by_id(user.id)
        assert stored.password_hash != "Abc12345!"
        assert hasher.compare("Abc12345!", stored.password_hash)

    def test_email_is_lowercased(self, auth_service):
        user = auth_service.register(_register_request(email="Mixed.Case@Example.com"))

        assert user.email == "mixed.case@example.com"

    def test_sends_verification_and_welcome(self, auth_service, mock_email_client, config):
        auth_service.register(_register_request())

        url = mock_email_client.send_verification_email.call_args.kwargs["verification_url"]
        assert url.startswith(f"{config.frontend_url}/auth/verify-email?token=")
        mock_email_client.send_welcome_email.assert_called_once_with(
            email="a@example.com", name="Ana"
        )

    def test_verification_link_carries_verification_token(
        self, auth_service, mock_email_client, token_service
    ):
        auth_service.register(_register_request())

        url = mock_email_client.send_verification_email.call_args.kwargs["verification_url"]
        token = url.split("token=", 1)[1]
        assert token_service.verify_temporary(token, TokenPurpose.EMAIL_VERIFICATION) == "a@example.com"

    def test_duplicate_email_conflict(self, auth_service, make_user):
        make_user(email="a@example.com")

        with pytest.raises(EmailAlreadyRegisteredError) as exc_info:
            auth_service.register(_register_request(email="A@example.com"))
        assert exc_info.value.status_code == 409

    def test_duplicate_inserted_after_check_is_conflict(self, auth_service, make_user, users, monkeypatch):
        """Another registration lands between the existence check and the insert."""
        make_user(email="a@example.com")
        monkeypatch.setattr(users, "email_exists", lambda email: False)

        with pytest.raises(EmailAlreadyRegisteredError) as exc_info:
            auth_service.register(_register_request(email="a@example.com"))

        assert exc_info.value.status_code == 409
        assert len(users.users) == 1

    def test_password_mismatch(self, auth_service, users):
        with pytest.raises(PasswordMismatchError):
            auth_service.register(_register_request(confirm="Abc12345?"))
        assert users.users == {}

    def test_weak_password_lists_failures(self, auth_service, users):
        with pytest.raises(WeakPasswordError) as exc_info:
            auth_service.register(_register_request(password="short"))

        assert exc_info.value.status_code == 400
        assert len(exc_info.value.errors) >= 2
        assert users.users == {}

    def test_mismatch_checked_before_duplicate(self, auth_service, make_user):
        """Input-shape failures come before the store lookup."""
        make_user(email="a@example.com")

        with pytest.raises(PasswordMismatchError):
            auth_service.register(_register_request(confirm="different"))

    def test_email_failure_does_not_fail_registration(self, auth_service, mock_email_client, users):
        """Mail is best-effort: the account exists even if the gateway is down."""
        mock_email_client.send_verification_email.side_effect = EmailGatewayError("down")
        mock_email_client.send_welcome_email.side_effect = EmailGatewayError("down")

        user = auth_service.register(_register_request())

        assert users.get_user_by_id(user.id) is not None

    def test_unexpected_error_becomes_internal(self, auth_service, users):
        users.create_user = Mock(side_effect=RuntimeError("connection reset"))

        with pytest.raises(InternalError) as exc_info:
            auth_service.register(_register_request())

        assert "connection reset" not in exc_info.value.message
        assert exc_info.value.status_code == 500

    def test_logs_registration_event(self, auth_service, mock_security_logger):
        auth_service.register(_register_request())

        assert SecurityEvent.USER_REGISTERED in _logged_events(mock_security_logger)


# =============================================================================
# EMAIL VERIFICATION
# =============================================================================


class TestVerifyEmail:

    def test_activates_account(self, auth_service, token_service, make_user):
        make_user(email="a@example.com", status=UserStatus.PENDING, email_verified=False)
        token = token_service.issue_temporary("a@example.com", TokenPurpose.EMAIL_VERIFICATION)

        user = auth_service.verify_email(token)

        assert user.email_verified is True
        assert user.status == UserStatus.ACTIVE

    def test_already_verified(self, auth_service, token_service, make_user):
        make_user(email="a@example.com")
        token = token_service.issue_temporary("a@example.com", TokenPurpose.EMAIL_VERIFICATION)

        with pytest.raises(EmailAlreadyVerifiedError) as exc_info:
            auth_service.verify_email(token)
        assert exc_info.value.status_code == 400

    def test_unknown_email(self, auth_service, token_service):
        token = token_service.issue_temporary("ghost@example.com", TokenPurpose.EMAIL_VERIFICATION)

        with pytest.raises(UserNotFoundError):
            auth_service.verify_email(token)

    def test_reset_token_rejected(self, auth_service, token_service, make_user):
        make_user(email="a@example.com", status=UserStatus.PENDING, email_verified=False)
        token = token_service.issue_temporary("a@example.com", TokenPurpose.PASSWORD_RESET)

        with pytest.raises(WrongTokenTypeError):
            auth_service.verify_email(token)

    @pytest.mark.parametrize("status", [UserStatus.INACTIVE, UserStatus.BANNED])
    def test_keeps_disabled_account_disabled(self, auth_service, token_service, make_user, users, status):
        stored = make_user(email="a@example.com", status=status, email_verified=False)
        token = token_service.issue_temporary("a@example.com", TokenPurpose.EMAIL_VERIFICATION)

        user = auth_service.verify_email(token)

        assert user.email_verified is True
        assert users.get_user_by_id(stored.id).status == status
        with pytest.raises(AccountInactiveError):
            auth_service.password_login("a@example.com", "Str0ng!Pass")


class TestResendVerification:

    def test_sends_for_unverified_account(self, auth_service, make_user, mock_email_client):
        make_user(email="a@example.com", status=UserStatus.PENDING, email_verified=False)

        auth_service.resend_verification("a@example.com")

        mock_email_client.send_verification_email.assert_called_once()

    def test_silent_for_unknown_email(self, auth_service, mock_email_client):
        assert auth_service.resend_verification("ghost@example.com") is None
        mock_email_client.send_verification_email.assert_not_called()

    def test_silent_for_verified_account(self, auth_service, make_user, mock_email_client):
        make_user(email="a@example.com")

        assert auth_service.resend_verification("a@example.com") is None
        mock_email_client.send_verification_email.assert_not_called()


# =============================================================================
# OTP LOGIN
# =============================================================================


class TestBeginLogin:
    """First step: credentials in, pending-login handle out. Never a token."""

    def test_returns_session_not_token(self, auth_service, make_user, config):
        make_user(email="a@example.com")

        challenge = auth_service.begin_login("a@example.com", "Str0ng!Pass")

        assert challenge.session_id
        assert challenge.expires_in == config.login_session_minutes * 60
        assert not hasattr(challenge, "token")

    def test_emails_six_digit_code(self, auth_service, make_user, mock_email_client):
        make_user(email="a@example.com")

        auth_service.begin_login("a@example.com", "Str0ng!Pass")

        code = _sent_code(mock_email_client)
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999

    def test_wrong_password(self, auth_service, make_user, login_sessions):
        make_user(email="a@example.com")

        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.begin_login("a@example.com", "Wr0ng!Pass")
        assert exc_info.value.status_code == 401
        assert len(login_sessions) == 0

    def test_unknown_email_same_error_as_wrong_password(self, auth_service):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.begin_login("ghost@example.com", "Str0ng!Pass")
        assert exc_info.value.message == InvalidCredentialsError().message

    @pytest.mark.parametrize("status", [UserStatus.INACTIVE, UserStatus.BANNED])
    def test_inactive_account_forbidden(self, auth_service, make_user, status):
        make_user(email="a@example.com", status=status)

        with pytest.raises(AccountInactiveError) as exc_info:
            auth_service.begin_login("a@example.com", "Str0ng!Pass")
        assert exc_info.value.status_code == 403

    def test_email_failure_discards_session(self, auth_service, make_user, mock_email_client, login_sessions):
        make_user(email="a@example.com")
        mock_email_client.send_login_code.side_effect = EmailGatewayError("down")

        with pytest.raises(InternalError):
            auth_service.begin_login("a@example.com", "Str0ng!Pass")

        assert len(login_sessions) == 0

    def test_failed_attempt_logged(self, auth_service, make_user, mock_security_logger):
        make_user(email="a@example.com")

        with pytest.raises(InvalidCredentialsError):
            auth_service.begin_login("a@example.com", "Wr0ng!Pass")

        assert _logged_events(mock_security_logger) == [SecurityEvent.LOGIN_FAILED]


class TestVerifyOtp:
    """Second step: code in, access token out."""

    def test_correct_code_issues_token(self, auth_service, make_user, mock_email_client, token_service):
        stored = make_user(email="a@example.com", role=UserRole.DRIVER)
        challenge = auth_service.begin_login("a@example.com", "Str0ng!Pass")

        result = auth_service.verify_otp(challenge.session_id, _sent_code(mock_email_client))

        claims = token_service.verify_access(result.token)
        assert claims.id == stored.id
        assert claims.role == UserRole.DRIVER
        assert result.user.email == "a@example.com"
        assert result.remember_token is None

    def test_session_is_one_time(self, auth_service, make_user, mock_email_client):
        make_user(email="a@example.com")
        challenge = auth_service.begin_login("a@example.com", "Str0ng!Pass")
        code = _sent_code(mock_email_client)
        auth_service.verify_otp(challenge.session_id, code)

        with pytest.raises(SessionNotFoundError):
            auth_service.verify_otp(challenge.session_id, code)

    def test_wrong_code_keeps_session(self, auth_service, make_user, mock_email_client):
        """Wrong code is 401 but the same session still accepts the right code."""
        make_user(email="a@example.com")
        challenge = auth_service.begin_login("a@example.com", "Str0ng!Pass")
        code = _sent_code(mock_email_client)
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(OtpMismatchError) as exc_info:
            auth_service.verify_otp(challenge.session_id, wrong)
        assert exc_info.value.status_code == 401

        result = auth_service.verify_otp(challenge.session_id, code)
        assert result.token

    def test_unknown_session_differs_from_wrong_code(self, auth_service):
        with pytest.raises(SessionNotFoundError) as exc_info:
            auth_service.verify_otp("no-such-session", "123456")
        assert exc_info.value.status_code == 401

    def test_expired_session_rejected_even_with_right_code(
        self, auth_service, make_user, mock_email_client, monkeypatch
    ):
        make_user(email="a@example.com")
        challenge = auth_service.begin_login("a@example.com", "Str0ng!Pass")
        code = _sent_code(mock_email_client)

        later = now_utc() + timedelta(minutes=5, seconds=1)
        monkeypatch.setattr(login_sessions_module, "now_utc", lambda: later)

        with pytest.raises(SessionExpiredError):
            auth_service.verify_otp(challenge.session_id, code)
        # Expired entry is gone
        with pytest.raises(SessionNotFoundError):
            auth_service.verify_otp(challenge.session_id, code)

    def test_concurrent_logins_are_independent(self, auth_service, make_user, mock_email_client):
        """Two logins for one account: each session completes on its own code."""
        make_user(email="a@example.com")
        first = auth_service.begin_login("a@example.com", "Str0ng!Pass")
        first_code = _sent_code(mock_email_client)
        second = auth_service.begin_login("a@example.com", "Str0ng!Pass")
        second_code = _sent_code(mock_email_client)

        assert first.session_id != second.session_id

        assert auth_service.verify_otp(first.session_id, first_code).token
        assert auth_service.verify_otp(second.session_id, second_code).token

    def test_account_deactivated_between_steps(self, auth_service, make_user, mock_email_client, users):
        stored = make_user(email="a@example.com")
        challenge = auth_service.begin_login("a@example.com", "Str0ng!Pass")
        users.users[stored.id] = stored.model_copy(update={"status": UserStatus.BANNED})

        with pytest.raises(AccountInactiveError):
            auth_service.verify_otp(challenge.session_id, _sent_code(mock_email_client))

    def test_records_last_login(self, auth_service, make_user, mock_email_client, users):
        stored = make_user(email="a@example.com")
        challenge = auth_service.begin_login("a@example.com", "Str0ng!Pass")

        auth_service.verify_otp(challenge.session_id, _sent_code(mock_email_client))

        assert users.get_user_by_id(stored.id).last_login_at is not None


class TestRegisterThenOtpLogin:
    """Fresh account through the OTP flow."""

    def test_register_login_wrong_code_then_right_code(self, auth_service, mock_email_client, users):
        user = auth_service.register(_register_request(email="a@example.com", password="Abc12345!"))
        assert user.status == UserStatus.PENDING
        assert user.email_verified is False

        challenge = auth_service.begin_login("a@example.com", "Abc12345!")
        assert challenge.session_id
        code = _sent_code(mock_email_client)

        with pytest.raises(OtpMismatchError):
            auth_service.verify_otp(challenge.session_id, "000000" if code != "000000" else "111111")

        result = auth_service.verify_otp(challenge.session_id, code)

        assert result.token
        assert result.user.status == UserStatus.ACTIVE
        assert users.get_user_by_id(user.id).email_verified is True


# =============================================================================
# PASSWORD LOGIN
# =============================================================================


class TestPasswordLogin:

    def test_issues_token_directly(self, auth_service, make_user, token_service):
        stored = make_user(email="a@example.com")

        result = auth_service.password_login("a@example.com", "Str0ng!Pass")

        assert token_service.verify_access(result.token).id == stored.id
        assert result.remember_token is None

    def test_remember_me_issues_long_lived_token(self, auth_service, make_user, token_service, config):
        make_user(email="a@example.com")

        result = auth_service.password_login("a@example.com", "Str0ng!Pass", remember_me=True)

        claims = token_service.verify_access(result.remember_token)
        assert claims.exp - claims.iat == 30 * 86400

    def test_pending_account_forbidden(self, auth_service, make_user):
        make_user(email="a@example.com", status=UserStatus.PENDING, email_verified=False)

        with pytest.raises(AccountInactiveError):
            auth_service.password_login("a@example.com", "Str0ng!Pass")

    def test_wrong_password(self, auth_service, make_user):
        make_user(email="a@example.com")

        with pytest.raises(InvalidCredentialsError):
            auth_service.password_login("a@example.com", "Wr0ng!Pass")

    def test_email_case_insensitive(self, auth_service, make_user):
        make_user(email="a@example.com")

        assert auth_service.password_login("  A@Example.com ", "Str0ng!Pass").token

    def test_unknown_email_still_runs_bcrypt(self, auth_service, make_user, hasher, monkeypatch):
        """Unknown and known emails cost the same bcrypt work."""
        make_user(email="a@example.com")
        compare = Mock(wraps=hasher.compare)
        monkeypatch.setattr(hasher, "compare", compare)

        with pytest.raises(InvalidCredentialsError):
            auth_service.password_login("ghost@example.com", "Str0ng!Pass")
        with pytest.raises(InvalidCredentialsError):
            auth_service.password_login("a@example.com", "Wr0ng!Pass")

        assert compare.call_count == 2
        unknown_hash = compare.call_args_list[0].args[1]
        assert unknown_hash.startswith("$2b$")


# =============================================================================
# SESSION
# =============================================================================


class TestRefreshAndCurrentUser:

    def test_refresh_reflects_current_role(self, auth_service, make_user, token_service, users):
        stored = make_user(email="a@example.com")
        identity = token_service.verify_access(
            auth_service.password_login("a@example.com", "Str0ng!Pass").token
        )
        users.users[stored.id] = stored.model_copy(update={"role": UserRole.ADMIN})

        result = auth_service.refresh_token(identity)

        assert token_service.verify_access(result.token).role == UserRole.ADMIN

    def test_refresh_rejects_deactivated(self, auth_service, make_user, token_service, users):
        stored = make_user(email="a@example.com")
        identity = token_service.verify_access(
            auth_service.password_login("a@example.com", "Str0ng!Pass").token
        )
        users.users[stored.id] = stored.model_copy(update={"status": UserStatus.INACTIVE})

        with pytest.raises(AccountInactiveError):
            auth_service.refresh_token(identity)

    def test_get_current_user(self, auth_service, make_user):
        stored = make_user(email="a@example.com")

        assert auth_service.get_current_user(stored.id).email == "a@example.com"

    def test_get_current_user_missing(self, auth_service):
        with pytest.raises(UserNotFoundError):
            auth_service.get_current_user(999)


class TestLogout:

    def test_clears_all_cookies(self, auth_service, make_user, cookie_manager):
        stored = make_user(email="a@example.com")
        response = Response()

        auth_service.logout(stored.id, response)

        cleared = response.headers.getlist("set-cookie")
        for name in (
            cookie_manager.auth_cookie,
            cookie_manager.session_cookie,
            cookie_manager.remember_auth_cookie,
            cookie_manager.remember_session_cookie,
        ):
            assert any(header.startswith(f"{name}=") for header in cleared)

    def test_records_last_logout(self, auth_service, make_user, users):
        stored = make_user(email="a@example.com")

        auth_service.logout(stored.id)

        assert users.get_user_by_id(stored.id).last_logout_at is not None

    def test_cookies_cleared_when_store_fails(self, auth_service, make_user, users):
        stored = make_user(email="a@example.com")
        users.update_last_logout = Mock(side_effect=RuntimeError("db down"))
        response = Response()

        with pytest.raises(InternalError):
            auth_service.logout(stored.id, response)

        assert len(response.headers.getlist("set-cookie")) == 4

    def test_anonymous_logout(self, auth_service, users):
        response = Response()

        auth_service.logout(None, response)

        assert len(response.headers.getlist("set-cookie")) == 4


# =============================================================================
# PASSWORDS
# =============================================================================


class TestForgotPassword:

    def test_same_outcome_for_known_and_unknown(self, auth_service, make_user):
        make_user(email="a@example.com")

        assert auth_service.forgot_password("a@example.com") is None
        assert auth_service.forgot_password("ghost@example.com") is None

    def test_sends_reset_link_only_for_known(self, auth_service, make_user, mock_email_client, config):
        make_user(email="a@example.com")

        auth_service.forgot_password("ghost@example.com")
        mock_email_client.send_password_reset_email.assert_not_called()

        auth_service.forgot_password("a@example.com")
        url = mock_email_client.send_password_reset_email.call_args.kwargs["reset_url"]
        assert url.startswith(f"{config.frontend_url}/reset-password?token=")

    def test_gateway_failure_still_succeeds(self, auth_service, make_user, mock_email_client):
        make_user(email="a@example.com")
        mock_email_client.send_password_reset_email.side_effect = EmailGatewayError("down")

        assert auth_service.forgot_password("a@example.com") is None


class TestResetPassword:

    def test_sets_new_password(self, auth_service, make_user, token_service, users, hasher):
        stored = make_user(email="a@example.com")
        token = token_service.issue_temporary("a@example.com", TokenPurpose.PASSWORD_RESET)

        auth_service.reset_password(token, "An0ther!Pass", "An0ther!Pass")

        assert hasher.compare("An0ther!Pass", users.get_user_by_id(stored.id).password_hash)

    def test_mismatch_rejected_before_token_decoded(self, auth_service, token_service):
        """A garbage token doesn't matter: the mismatch is reported first."""
        token_service.verify_temporary = Mock(side_effect=AssertionError("must not decode"))

        with pytest.raises(PasswordMismatchError) as exc_info:
            auth_service.reset_password("not-a-token", "An0ther!Pass", "Different!1")
        assert exc_info.value.status_code == 400
        token_service.verify_temporary.assert_not_called()

    def test_weak_password_rejected(self, auth_service, token_service):
        token = token_service.issue_temporary("a@example.com", TokenPurpose.PASSWORD_RESET)

        with pytest.raises(WeakPasswordError):
            auth_service.reset_password(token, "weak", "weak")

    def test_verification_token_rejected(self, auth_service, make_user, token_service):
        make_user(email="a@example.com")
        token = token_service.issue_temporary("a@example.com", TokenPurpose.EMAIL_VERIFICATION)

        with pytest.raises(WrongTokenTypeError):
            auth_service.reset_password(token, "An0ther!Pass", "An0ther!Pass")

    def test_expired_token(self, auth_service, make_user, token_service, monkeypatch):
        make_user(email="a@example.com")
        issued_at = now_utc() - timedelta(hours=2)
        monkeypatch.setattr(tokens_module, "now_utc", lambda: issued_at)
        token = token_service.issue_temporary("a@example.com", TokenPurpose.PASSWORD_RESET)
        monkeypatch.undo()

        with pytest.raises(TokenExpiredError):
            auth_service.reset_password(token, "An0ther!Pass", "An0ther!Pass")

    def test_unknown_account(self, auth_service, token_service):
        token = token_service.issue_temporary("ghost@example.com", TokenPurpose.PASSWORD_RESET)

        with pytest.raises(UserNotFoundError):
            auth_service.reset_password(token, "An0ther!Pass", "An0ther!Pass")

    def test_confirmation_email_best_effort(self, auth_service, make_user, token_service, mock_email_client):
        make_user(email="a@example.com")
        mock_email_client.send_password_changed_email.side_effect = EmailGatewayError("down")
        token = token_service.issue_temporary("a@example.com", TokenPurpose.PASSWORD_RESET)

        auth_service.reset_password(token, "An0ther!Pass", "An0ther!Pass")

        mock_email_client.send_password_changed_email.assert_called_once_with(email="a@example.com")


class TestChangePassword:

    def test_changes_password(self, auth_service, make_user, users, hasher):
        stored = make_user(email="a@example.com")

        auth_service.change_password(stored.id, "Str0ng!Pass", "An0ther!Pass", "An0ther!Pass")

        assert hasher.compare("An0ther!Pass", users.get_user_by_id(stored.id).password_hash)

    def test_wrong_current_password_changes_nothing(self, auth_service, make_user, users):
        stored = make_user(email="a@example.com")
        before = users.get_user_by_id(stored.id).password_hash

        with pytest.raises(BadRequestError) as exc_info:
            auth_service.change_password(stored.id, "Wr0ng!Pass", "An0ther!Pass", "An0ther!Pass")

        assert exc_info.value.status_code == 400
        assert users.get_user_by_id(stored.id).password_hash == before

    def test_same_as_current_changes_nothing(self, auth_service, make_user, users):
        stored = make_user(email="a@example.com")
        before = users.get_user_by_id(stored.id).password_hash

        with pytest.raises(BadRequestError, match="different"):
            auth_service.change_password(stored.id, "Str0ng!Pass", "Str0ng!Pass", "Str0ng!Pass")

        assert users.get_user_by_id(stored.id).password_hash == before

    def test_mismatch(self, auth_service, make_user):
        stored = make_user(email="a@example.com")

        with pytest.raises(PasswordMismatchError):
            auth_service.change_password(stored.id, "Str0ng!Pass", "An0ther!Pass", "Other!Pass1")

    def test_weak_new_password(self, auth_service, make_user):
        stored = make_user(email="a@example.com")

        with pytest.raises(WeakPasswordError):
            auth_service.change_password(stored.id, "Str0ng!Pass", "weakpass", "weakpass")

    def test_missing_user(self, auth_service):
        with pytest.raises(UserNotFoundError):
            auth_service.change_password(42, "Str0ng!Pass", "An0ther!Pass", "An0ther!Pass")

    def test_failed_attempt_logged(self, auth_service, make_user, mock_security_logger):
        stored = make_user(email="a@example.com")

        with pytest.raises(BadRequestError):
            auth_service.change_password(stored.id, "Wr0ng!Pass", "An0ther!Pass", "An0ther!Pass")

        assert SecurityEvent.PASSWORD_CHANGE_FAILED in _logged_events(mock_security_logger)
