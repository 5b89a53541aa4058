from datetime import datetime, timezone
import random
import string

from lessonsync import db


def generate_session_code(length=6):
    """Generate a unique, short session code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not SessionCode.query.filter_by(code=code).first():
            return code


class SessionCode(db.Model):
    __tablename__ = 'session_code'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    teacher_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'teacher': self.teacher_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
