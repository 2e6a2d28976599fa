from enum import Enum


class TokenType(str, Enum):
    ACCESS = 'access'
    REFRESH = 'refresh'
    RESET_PASSWORD = 'resetPassword'
    VERIFY_EMAIL = 'verifyEmail'


class UserRole(str, Enum):
    USER = 'user'
    ADMIN = 'admin'


class AuthProvider(str, Enum):
    GITHUB = 'github'
    GOOGLE = 'google'
    DISCORD = 'discord'
    SPOTIFY = 'spotify'
    FACEBOOK = 'facebook'


class Permission(str, Enum):
    GET_USERS = 'getUsers'
    MANAGE_USERS = 'manageUsers'


ROLE_RIGHTS: dict[UserRole, list[Permission]] = {
    UserRole.USER: [],
    UserRole.ADMIN: [Permission.GET_USERS, Permission.MANAGE_USERS],
}
