from tortoise import fields
from tortoise.models import Model
import uuid


class User(Model):
    """Account stored in the database; guests have no username or password."""

    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    username = fields.CharField(max_length=50, unique=True, null=True)
    password_hash = fields.CharField(max_length=128, null=True)
    display_name = fields.CharField(max_length=100)
    is_guest = fields.BooleanField(default=False)
    xp = fields.IntField(default=0)
    spots = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"


class AuthSession(Model):
    """Opaque session token presented as the ``auth_token`` cookie."""

    token = fields.CharField(max_length=64, pk=True)
    user = fields.ForeignKeyField("models.User", related_name="sessions", on_delete=fields.CASCADE)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "sessions"
