from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """The authenticated caller as seen by the exam session engine."""

    user_id: int
    school_id: object
    role: str

    @classmethod
    def from_user(cls, user):
        return cls(user_id=user.pk, school_id=user.school_id, role=user.role)
