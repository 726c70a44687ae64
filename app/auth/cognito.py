# app/auth/cognito.py
import boto3
import hmac
import hashlib
import base64
from typing import Dict, Any, List
from botocore.exceptions import ClientError
from app.config import Settings
from app.auth.models import UserRole, UserResponse
import json
import logging

logger = logging.getLogger(__name__)

# Cognito error code -> message shown to the caller
SIGN_UP_ERRORS = {
    'UsernameExistsException': "An account with this email already exists",
    'InvalidPasswordException': "Password does not meet requirements",
}
SIGN_IN_ERRORS = {
    'NotAuthorizedException': "Invalid email or password",
    'UserNotConfirmedException': "Please confirm your email before signing in",
    'UserNotFoundException': "Invalid email or password",
}

def _error_message(error: ClientError, known: Dict[str, str], fallback: str) -> str:
    details = error.response.get('Error', {})
    return known.get(details.get('Code'), f"{fallback}: {details.get('Message', 'unknown error')}")

def _user_from_attributes(attributes: List[Dict[str, str]]) -> UserResponse:
    values = {attr['Name']: attr['Value'] for attr in attributes}
    role = values.get('custom:role', UserRole.USER.value)
    return UserResponse(
        id=values.get('sub', ''),
        email=values.get('email', ''),
        name=values.get('name', ''),
        role=role if role in {r.value for r in UserRole} else UserRole.USER,
        permissions=json.loads(values.get('custom:permissions') or '[]')
    )

class CognitoClient:
    """Identity provider for staff accounts; admin role lives in custom:role"""

    def __init__(self, settings: Settings):
        self.client = boto3.client('cognito-idp', region_name=settings.aws_region)
        self.user_pool_id = settings.cognito_user_pool_id
        self.client_id = settings.cognito_client_id
        self.client_secret = settings.cognito_client_secret
        self.auto_confirm = settings.environment == "development"

    def _secret_hash(self, username: str) -> str:
        digest = hmac.new(
            self.client_secret.encode('utf-8'),
            (username + self.client_id).encode('utf-8'),
            digestmod=hashlib.sha256
        ).digest()
        return base64.b64encode(digest).decode()

    def register_user(self, email: str, password: str, full_name: str) -> Dict[str, Any]:
        """Sign up with the default user role; confirmed immediately in development"""
        try:
            response = self.client.sign_up(
                ClientId=self.client_id,
                SecretHash=self._secret_hash(email),
                Username=email,
                Password=password,
                UserAttributes=[
                    {'Name': 'email', 'Value': email},
                    {'Name': 'name', 'Value': full_name},
                    {'Name': 'custom:role', 'Value': UserRole.USER.value},
                    {'Name': 'custom:permissions', 'Value': json.dumps([])}
                ]
            )
            if self.auto_confirm:
                self.client.admin_confirm_sign_up(UserPoolId=self.user_pool_id, Username=email)
        except ClientError as e:
            logger.warning(f"Cognito sign-up rejected for {email}: {e}")
            raise ValueError(_error_message(e, SIGN_UP_ERRORS, "Registration failed"))

        return {"success": True, "user_sub": response['UserSub'], "email": email}

    def authenticate_user(self, email: str, password: str) -> Dict[str, Any]:
        try:
            response = self.client.initiate_auth(
                ClientId=self.client_id,
                AuthFlow='USER_PASSWORD_AUTH',
                AuthParameters={
                    'USERNAME': email,
                    'PASSWORD': password,
                    'SECRET_HASH': self._secret_hash(email)
                }
            )
        except ClientError as e:
            raise ValueError(_error_message(e, SIGN_IN_ERRORS, "Authentication failed"))

        if 'ChallengeName' in response:
            # MFA and forced password change are not supported by this API
            raise ValueError(f"Authentication challenge required: {response['ChallengeName']}")

        result = response['AuthenticationResult']
        return {
            "access_token": result['AccessToken'],
            "refresh_token": result.get('RefreshToken'),
            "expires_in": result['ExpiresIn']
        }

    def get_user_info(self, access_token: str) -> UserResponse:
        """Resolve an access token to the caller's identity"""
        try:
            response = self.client.get_user(AccessToken=access_token)
        except ClientError:
            raise ValueError("Failed to get user information")
        return _user_from_attributes(response['UserAttributes'])

    def sign_out(self, access_token: str):
        try:
            self.client.global_sign_out(AccessToken=access_token)
        except ClientError as e:
            # Token is discarded client-side either way
            logger.info(f"Cognito global sign-out skipped: {e}")
