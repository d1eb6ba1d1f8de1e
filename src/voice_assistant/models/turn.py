"""
Data models for the voice assistant conversation.
"""
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = 'user'
    ASSISTANT = 'assistant'


@dataclass(frozen=True)
class Turn:
    """
    A single utterance in the conversation, either from the user or the assistant.
    Turns are never edited once appended to the history.
    """
    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        return cls(Role.ASSISTANT, content)

    def to_payload(self) -> dict[str, str]:
        return {'role': self.role.value, 'content': self.content}
