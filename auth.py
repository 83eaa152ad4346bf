# --------------------------------------------------------------------------------
# Owner login through the OIDC provider (Flask-Login session)
# --------------------------------------------------------------------------------
import logging
import os
import time
from datetime import datetime
from functools import wraps
from urllib.parse import urlencode

import requests
from flask import Blueprint, jsonify, redirect, request, session
from flask_login import LoginManager, current_user, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from config import (
    ISSUER_URL, OIDC_CLIENT_ID, OIDC_CLIENT_SECRET, OIDC_SCOPE, OIDC_DISCOVERY_TTL,
)
from models import db, User

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api')
login_manager = LoginManager()

REQUEST_TIMEOUT = 10
_discovery_cache = {"config": None, "fetched_at": 0.0}


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"message": "Unauthorized"}), 401


def get_oidc_config():
    """Provider discovery document, cached for OIDC_DISCOVERY_TTL seconds."""
    now = time.time()
    if _discovery_cache["config"] and now - _discovery_cache["fetched_at"] < OIDC_DISCOVERY_TTL:
        return _discovery_cache["config"]
    res = requests.get(ISSUER_URL + "/.well-known/openid-configuration", timeout=REQUEST_TIMEOUT)
    res.raise_for_status()
    _discovery_cache["config"] = res.json()
    _discovery_cache["fetched_at"] = now
    return _discovery_cache["config"]


def _redirect_uri():
    return request.url_root.rstrip('/') + '/api/callback'


def _store_tokens(token_data):
    session['oidc_access_token'] = token_data.get('access_token')
    if token_data.get('refresh_token'):
        session['oidc_refresh_token'] = token_data['refresh_token']
    expires_in = int(token_data.get('expires_in') or 3600)
    session['oidc_expires_at'] = int(time.time()) + expires_in


def _refresh_tokens():
    """Refresh the access token with the stored refresh token. Returns True on success."""
    refresh_token = session.get('oidc_refresh_token')
    if not refresh_token:
        return False
    try:
        token_res = requests.post(
            get_oidc_config()['token_endpoint'],
            data={
                'grant_type': 'refresh_token',
                'refresh_token': refresh_token,
                'client_id': OIDC_CLIENT_ID,
                'client_secret': OIDC_CLIENT_SECRET,
            },
            headers={'Accept': 'application/json'},
            timeout=REQUEST_TIMEOUT,
        )
        if token_res.status_code != 200:
            return False
        token_data = token_res.json()
    except (requests.RequestException, ValueError, KeyError):
        logger.warning("Token refresh failed", exc_info=True)
        return False
    _store_tokens(token_data)
    return True


def owner_required(view):
    """Logged-in owner with a live (or refreshable) provider token, else 401."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        expires_at = session.get('oidc_expires_at')
        if not current_user.is_authenticated or not expires_at:
            return login_manager.unauthorized()
        if int(time.time()) > int(expires_at) and not _refresh_tokens():
            return login_manager.unauthorized()
        return view(*args, **kwargs)
    return wrapper


def upsert_user(claims):
    """Create or refresh the owner row from provider claims."""
    user = db.session.get(User, str(claims['sub']))
    if user is None:
        user = User(id=str(claims['sub']))
        db.session.add(user)
    user.email = claims.get('email') or user.email
    user.first_name = claims.get('first_name') or claims.get('given_name') or user.first_name
    user.last_name = claims.get('last_name') or claims.get('family_name') or user.last_name
    user.profile_image_url = claims.get('profile_image_url') or claims.get('picture') or user.profile_image_url
    user.updated_at = datetime.now()
    db.session.commit()
    return user


@auth_bp.route('/login')
def login():
    """Redirect to the provider's authorize page"""
    if not OIDC_CLIENT_ID:
        return jsonify({"message": "Login is not configured"}), 503
    state = os.urandom(16).hex()
    session['oauth_state'] = state
    next_url = request.args.get('next') or '/'
    # same-site paths only
    if not next_url.startswith('/') or next_url.startswith('//'):
        next_url = '/'
    session['oauth_next'] = next_url
    params = {
        'response_type': 'code',
        'client_id': OIDC_CLIENT_ID,
        'redirect_uri': _redirect_uri(),
        'scope': OIDC_SCOPE,
        'state': state,
        'prompt': 'login consent',
    }
    logger.info("Login attempt from %s", request.host)
    return redirect(get_oidc_config()['authorization_endpoint'] + '?' + urlencode(params))


@auth_bp.route('/callback')
def callback():
    """Exchange the code for tokens, load the profile and log the owner in"""
    state = request.args.get('state')
    if not state or state != session.get('oauth_state'):
        return redirect('/login')
    session.pop('oauth_state', None)
    next_url = session.pop('oauth_next', '/')
    code = request.args.get('code')
    if not code:
        return redirect('/login')

    try:
        config = get_oidc_config()
        token_res = requests.post(
            config['token_endpoint'],
            data={
                'grant_type': 'authorization_code',
                'code': code,
                'redirect_uri': _redirect_uri(),
                'client_id': OIDC_CLIENT_ID,
                'client_secret': OIDC_CLIENT_SECRET,
            },
            headers={'Accept': 'application/json'},
            timeout=REQUEST_TIMEOUT,
        )
        if token_res.status_code != 200:
            logger.warning("Token exchange failed: %s", token_res.status_code)
            return redirect('/login')
        token_data = token_res.json()
        access_token = token_data.get('access_token')
        if not access_token:
            return redirect('/login')

        profile_res = requests.get(
            config['userinfo_endpoint'],
            headers={'Authorization': 'Bearer ' + access_token},
            timeout=REQUEST_TIMEOUT,
        )
        if profile_res.status_code != 200:
            logger.warning("Userinfo request failed: %s", profile_res.status_code)
            return redirect('/login')
        claims = profile_res.json()
    except (requests.RequestException, ValueError, KeyError):
        logger.warning("OIDC callback failed", exc_info=True)
        return redirect('/login')

    if not claims.get('sub'):
        return redirect('/login')
    try:
        user = upsert_user(claims)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to save user %s", claims.get('sub'))
        return redirect('/login')

    session.permanent = True
    login_user(user)
    _store_tokens(token_data)
    logger.info("User %s logged in", user.id)
    return redirect(next_url)


@auth_bp.route('/logout')
def logout():
    logout_user()
    for key in ('oidc_access_token', 'oidc_refresh_token', 'oidc_expires_at'):
        session.pop(key, None)
    home = request.url_root.rstrip('/')
    try:
        end_session = get_oidc_config().get('end_session_endpoint')
    except (requests.RequestException, ValueError):
        end_session = None
    if not end_session:
        return redirect(home)
    return redirect(end_session + '?' + urlencode({
        'client_id': OIDC_CLIENT_ID,
        'post_logout_redirect_uri': home,
    }))


@auth_bp.route('/auth/user')
@owner_required
def auth_user():
    return jsonify(current_user.to_dict())
