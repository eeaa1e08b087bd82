# steelvault/models/client.py

from .base import db, utcnow


class Client(db.Model):
    __tablename__ = 'Client'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    company_name = db.Column('companyName', db.String(150))
    email = db.Column(db.String(120))
    contact_no = db.Column('contactNo', db.String(40))
    address = db.Column(db.String(255))
    notes = db.Column(db.Text)
    configuration = db.Column(db.JSON)

    # Counters maintained by the data entry screens
    active_projects = db.Column('activeProjects', db.Integer, default=0)
    completed_projects = db.Column('completedProjects', db.Integer, default=0)
    total_projects = db.Column('totalProjects', db.Integer, default=0)
    last_activity_date = db.Column('lastActivityDate', db.DateTime)

    created_at = db.Column('createdAt', db.DateTime, default=utcnow)
    updated_at = db.Column('updatedAt', db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    projects = db.relationship('Project', backref='client', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'companyName': self.company_name,
            'email': self.email,
            'contactNo': self.contact_no,
            'address': self.address,
            'notes': self.notes,
            'configuration': self.configuration,
            'activeProjects': self.active_projects,
            'completedProjects': self.completed_projects,
            'totalProjects': self.total_projects,
            'lastActivityDate': self.last_activity_date.isoformat() if self.last_activity_date else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
