from flask import Blueprint, request, session, current_app, jsonify
from datetime import datetime, timezone

from extensions import limiter
from utils.security import check_access_key

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _login_limit() -> str:
    return current_app.config.get('LOGIN_RATE_LIMIT', '10 per minute')


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(_login_limit)
def login():
    """Exchange the shared access key for an admin session.

    The session is permanent, so it lives for PERMANENT_SESSION_LIFETIME
    (SESSION_LIFETIME_HOURS) rather than until the browser closes.
    """
    data = request.get_json(silent=True) or {}
    key = (data.get('key') or data.get('accessKey') or '').strip()
    if not key:
        return jsonify({'error': 'Access key is required'}), 400

    if not check_access_key(current_app.config.get('ACCESS_KEY'), key):
        current_app.logger.warning('Failed login attempt from %s', request.remote_addr)
        return jsonify({'error': 'Invalid access key'}), 401

    session.clear()
    session.permanent = True
    session['admin_logged_in'] = True
    session['logged_in_at'] = datetime.now(timezone.utc).isoformat()
    current_app.logger.info('Admin login from %s', request.remote_addr)
    return jsonify({'success': True, 'message': 'Login successful'})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True, 'message': 'Logged out'})


@auth_bp.route('/verify', methods=['GET'])
def verify():
    if not session.get('admin_logged_in'):
        return jsonify({'valid': False}), 401
    return jsonify({'valid': True, 'loggedInAt': session.get('logged_in_at')})
