from tortoise import fields
from tortoise.models import Model


class Message(Model):
    """A broadcast chat message, archived for operators. Never replayed to clients."""

    id = fields.IntField(pk=True)
    room = fields.CharField(max_length=255, index=True)
    user = fields.TextField()
    text = fields.TextField()
    timestamp = fields.DatetimeField()

    class Meta:
        table = "messages"
        ordering = ["timestamp"]
