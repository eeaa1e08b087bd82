# steelvault/models/user.py

from .base import db, utcnow
from ..services.passwords import hash_password, verify_password


class User(db.Model):
    """Team leads, admins and client PMs share one table; userType is the role."""
    __tablename__ = 'User'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), index=True, unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    user_type = db.Column('userType', db.String(20), default='employee', nullable=False)  # 'admin', 'employee', 'client'
    client_id = db.Column('clientId', db.Integer, db.ForeignKey('Client.id'), nullable=True)
    contact_no = db.Column('contactNo', db.String(40))
    teaminfo = db.Column(db.JSON)
    created_at = db.Column('createdAt', db.DateTime, default=utcnow)

    client = db.relationship('Client', backref=db.backref('users', lazy='dynamic'))

    def set_password(self, password):
        """Creates a hashed password."""
        self.password = hash_password(password)

    def check_password(self, password):
        """Checks a password against the stored hash."""
        return verify_password(password, self.password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'userType': self.user_type,
            'clientId': self.client_id,
            'contactNo': self.contact_no,
            'teaminfo': self.teaminfo,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<User id={self.id} email={self.email} userType={self.user_type}>'
