from enum import Enum


class IdentityErrors(str, Enum):
    INTERNAL_SERVER_ERROR = 'Internal server error'
    PLEASE_AUTHENTICATE = 'Please authenticate'
    UNAUTHORIZED = 'Unauthorized'
    FORBIDDEN = 'Forbidden'
    NOT_FOUND = 'Not found'
    VERIFY_EMAIL_FIRST = 'Please verify your email'
    USER_NOT_FOUND = 'User not found'
    EMAIL_TAKEN = 'Email already taken'
    INCORRECT_EMAIL_OR_PASSWORD = 'Incorrect email or password'
    OLD_PASSWORD_INCORRECT = 'Old password is incorrect'
    PASSWORD_RESET_FAILED = 'Password reset failed'
    EMAIL_VERIFICATION_FAILED = 'Email verification failed'
    RATE_LIMITED = 'Too many requests, please try again later'

    # OAuth
    UNKNOWN_OAUTH_PROVIDER = 'Unknown OAuth provider: {provider}'
    OAUTH_NOT_CONFIGURED = '{provider} OAuth is not configured'
    OAUTH_SIGNUP_EMAIL_EXISTS = 'Cannot signup with {provider}, user already exists with that email'
    OAUTH_ACCOUNT_LINKED_TO_OTHER_USER = 'This {provider} account is already linked to another user'
    OAUTH_PROVIDER_ALREADY_LINKED = 'A different {provider} account is already linked to this user'
    OAUTH_RESOLUTION_CONFLICT = 'Could not complete {provider} sign in, please try again'
