"""
Authentication routes for Pitchside

Coaches sign in with a one-time code sent to their email address; the
first successful sign-in creates their coach profile.
"""

from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_user, logout_user, login_required, current_user

from .access import get_storage, error_response, get_json_body
from .auth import UserSession, generate_otp_code, otp_expiry, send_otp_email
from .extensions import csrf, limiter
from .utils import is_valid_email

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _account_payload(storage, coach):
    membership = storage.get_membership(coach.id)
    club = storage.get_club(membership.club_id) if membership else None
    return {
        'coach': coach.model_dump(mode='json'),
        'membership': membership.model_dump(mode='json') if membership else None,
        'club': club.model_dump(mode='json') if club else None,
    }


@auth_bp.route('/otp', methods=['POST'])
@csrf.exempt
@limiter.limit("5 per minute")
def request_code():
    """Send (or resend) a sign-in code"""
    data = get_json_body()
    try:
        email = (data.get('email') or '').strip().lower()
        if not is_valid_email(email):
            return error_response('Please enter a valid email address', 400)

        storage = get_storage()
        code = generate_otp_code()
        storage.create_otp_code(email, code, otp_expiry())
        send_otp_email(email, code)
        current_app.logger.info(f"Sign-in code requested for {email}")

        return jsonify({'success': True, 'message': 'We sent a sign-in code to your email'})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error sending sign-in code: {e}", exc_info=True)
        return error_response('An error occurred. Please try again.', 500)


@auth_bp.route('/verify', methods=['POST'])
@csrf.exempt
@limiter.limit("10 per minute")
def verify_code():
    """Sign in with a code; creates the coach profile on first sign-in"""
    data = get_json_body()
    try:
        email = (data.get('email') or '').strip().lower()
        code = (data.get('code') or '').strip()
        if not email or not code:
            return error_response('Email and code are required', 400)

        storage = get_storage()
        if not storage.verify_otp_code(email, code):
            current_app.logger.info(f"Failed sign-in attempt for {email}")
            return error_response('Invalid or expired code', 401)

        is_new = storage.get_coach_by_email(email) is None
        coach = storage.ensure_coach_profile(email)
        if not coach.is_active:
            return error_response('This account has been deactivated', 403)

        # Security: drop any pre-login session state before logging in
        session.clear()
        login_user(UserSession(coach), remember=True)
        session.permanent = True
        current_app.logger.info(f"Coach {coach.id} signed in{' for the first time' if is_new else ''}")

        payload = _account_payload(storage, coach)
        payload.update({'success': True, 'is_new': is_new})
        return jsonify(payload)
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error verifying sign-in code: {e}", exc_info=True)
        return error_response('An error occurred. Please try again.', 500)


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    session.clear()
    return jsonify({'success': True})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """Signed-in coach with their club membership"""
    storage = get_storage()
    coach = storage.get_coach(current_user.id)
    if not coach:
        return error_response('Coach not found', 404)
    payload = _account_payload(storage, coach)
    payload['success'] = True
    return jsonify(payload)
