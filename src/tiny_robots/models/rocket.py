"""
Rocket.Chat room message model.
"""

from pydantic import BaseModel

ROOM_MESSAGES_STREAM = "stream-room-messages"


class RoomMessage(BaseModel):
    """A message posted to a Rocket.Chat room.

    ``author`` is the sender's username. Outgoing messages leave ``id``
    empty; the client assigns a fresh one on send.
    """
    id: str = ""
    room_id: str
    content: str
    author: str = ""

    def reply(self, content: str) -> "RoomMessage":
        return RoomMessage(room_id=self.room_id, content=content)
