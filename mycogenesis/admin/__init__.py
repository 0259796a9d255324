from .user_admin import UserAdmin, build_user_profile, generate_avatar_url

__all__ = ["UserAdmin", "build_user_profile", "generate_avatar_url"]
