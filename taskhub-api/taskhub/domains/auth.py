import logging
from datetime import datetime
from urllib.parse import urlencode

from authlib.integrations.base_client import OAuthError
from flask import Blueprint, request, jsonify, current_app, redirect, url_for
from flask_expects_json import expects_json
from flask_jwt_extended import create_access_token, create_refresh_token, get_jti, get_jwt, get_jwt_identity
from flask_jwt_extended import jwt_required

from taskhub import limiter, oauth
from taskhub.domains.user import user_schema
from taskhub.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from taskhub.models import User, RefreshToken
from taskhub.schemas import schema_register, schema_login

bp = Blueprint('auth', 'auth')
logger = logging.getLogger(__name__)


def auth_rate_limit():
    return current_app.config['AUTH_RATE_LIMIT']


def issue_tokens(user_id: str) -> dict:
    """ Creates an access/refresh token pair, the refresh token is tracked until used, revoked or expired """
    access_token = create_access_token(identity=user_id)
    refresh_token = create_refresh_token(identity=user_id)

    RefreshToken(
        jti=get_jti(refresh_token),
        user=user_id,
        expires_at=datetime.utcnow() + current_app.config['JWT_REFRESH_TOKEN_EXPIRES'],
    ).save()

    return {
        'accessToken': access_token,
        'refreshToken': refresh_token,
    }


@bp.route('/register', methods=['POST'])
@limiter.limit(auth_rate_limit)
@expects_json(schema_register)
def register():
    new_user_data = request.json

    # check if user already exists
    if User.find_by_email(new_user_data['email']):
        raise ConflictError('User with this email already exists')

    user = User(
        email=new_user_data['email'],
        password=new_user_data['password'],
        name=new_user_data['name'],
    )
    user.save()
    logger.info(f'registered user {user._id}')

    return jsonify({
        'user': user_schema.dump(user),
        **issue_tokens(user._id),
    }), 201


@bp.route('/login', methods=['POST'])
@limiter.limit(auth_rate_limit)
@expects_json(schema_login)
def login():
    found_user = User.find_by_email(request.json['email'])

    # same message for unknown emails and wrong passwords
    if found_user is None or not found_user.check_password(request.json['password']):
        raise UnauthorizedError('Invalid email or password')

    # update last login timestamp
    found_user.update(last_login=datetime.utcnow())

    return jsonify({
        'user': user_schema.dump(found_user),
        **issue_tokens(found_user._id),
    }), 200


@bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """ Rotates the refresh token: the presented token is revoked and a new pair is issued """
    user_id = get_jwt_identity()
    if not RefreshToken.revoke(get_jwt()['jti']):
        # lost a race against another refresh/logout with the same token
        raise UnauthorizedError('Invalid refresh token')

    return jsonify(issue_tokens(user_id)), 200


@bp.route('/logout', methods=['POST'])
@jwt_required(refresh=True)
def logout():
    RefreshToken.revoke(get_jwt()['jti'])
    logger.info(f'user {get_jwt_identity()} logged out')
    return jsonify({'msg': 'logout successful'}), 200


def fetch_google_profile() -> dict:
    """ Exchanges the authorization code of the callback request, returns the OpenID userinfo claims """
    token = oauth.google.authorize_access_token()
    return token.get('userinfo') or oauth.google.userinfo(token=token)


def find_or_create_google_user(profile: dict) -> User:
    """
    Looks the user up by Google account id, then by email.
    A user found by email gets the Google account linked, otherwise a new passwordless user is created.
    """
    email = profile.get('email')
    if not email:
        raise ValidationError('No email found in Google profile')

    user = User.objects(google_id=profile['sub']).first()
    if user is not None:
        return user

    user = User.find_by_email(email)
    if user is not None:
        user.google_id = profile['sub']
        user.save()
        logger.info(f'linked google account to user {user._id}')
        return user

    user = User(
        email=email,
        name=profile.get('name') or email.split('@')[0],
        google_id=profile['sub'],
        avatar_url=profile.get('picture'),
    )
    user.save()
    logger.info(f'registered user {user._id} with google')
    return user


@bp.route('/google', methods=['GET'])
@limiter.limit(auth_rate_limit)
def google_login():
    if not current_app.config['GOOGLE_CLIENT_ID']:
        raise NotFoundError('Google sign-in is not configured')

    redirect_uri = current_app.config['GOOGLE_CALLBACK_URL'] or url_for('auth.google_callback', _external=True)
    return oauth.google.authorize_redirect(redirect_uri)


@bp.route('/google/callback', methods=['GET'])
@limiter.limit(auth_rate_limit)
def google_callback():
    """ Completes Google sign-in, the token pair is handed to the frontend in the redirect query string """
    frontend_url = current_app.config['FRONTEND_URL']
    try:
        profile = fetch_google_profile()
    except OAuthError as exc:
        logger.warning(f'google sign-in failed: {exc.error}')
        return redirect(f'{frontend_url}/login?error=oauth_failed')

    user = find_or_create_google_user(profile)
    user.update(last_login=datetime.utcnow())

    return redirect(f'{frontend_url}/auth/callback?{urlencode(issue_tokens(user._id))}')
