from flask import Blueprint, jsonify, request
from healthproof.auth import bearer_token, requires_auth
from healthproof.errors import ServiceError
from healthproof.extensions import db
from healthproof.models.user import User
from healthproof.rate_limit import auth_limit
from healthproof.services.auth_service import AuthService
from healthproof.utils.validation import json_body

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/signup', methods=['POST'])
@auth_limit
def signup():
    data = json_body(request)
    result = AuthService().signup(
        name=data.get('name'),
        email=data.get('email'),
        password=data.get('password'),
        newsletter=data.get('newsletter', False),
    )
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify({'message': 'Account created successfully.', 'userId': result.id}), 201


@auth_bp.route('/signin', methods=['POST'])
@auth_limit
def signin():
    data = json_body(request)
    result = AuthService().signin(data.get('email'), data.get('password'))
    if isinstance(result, ServiceError):
        return result.to_response()
    token, user = result
    return jsonify({'token': token, 'user': user.to_dict()})


@auth_bp.route('/signout', methods=['POST'])
@requires_auth
def signout(auth):
    AuthService().signout(bearer_token())
    return jsonify({'success': True})


@auth_bp.route('/me')
@requires_auth
def me(auth):
    user = db.session.get(User, auth.user_id)
    return jsonify(user.to_dict())
