# steelvault/models/project.py

from .base import db, utcnow


class Project(db.Model):
    __tablename__ = 'Project'

    id = db.Column(db.Integer, primary_key=True)
    project_no = db.Column('projectNo', db.String(40), unique=True)
    sol_project_no = db.Column('solProjectNo', db.String(40), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    client_id = db.Column('clientId', db.Integer, db.ForeignKey('Client.id'), nullable=True)
    status = db.Column(db.String(40), default='Live')
    priority = db.Column(db.String(20), default='MEDIUM')
    progress = db.Column(db.Integer, default=0)
    branch = db.Column(db.String(60))
    sol_tl_id = db.Column('solTLId', db.Integer, db.ForeignKey('User.id'), nullable=True)
    client_pm = db.Column('clientPm', db.Integer, db.ForeignKey('User.id'), nullable=True)
    start_date = db.Column('startDate', db.Date)
    end_date = db.Column('endDate', db.Date)
    expected_completion = db.Column('expectedCompletion', db.Date)
    created_at = db.Column('createdAt', db.DateTime, default=utcnow)
    last_updated = db.Column('lastUpdated', db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    packages = db.relationship('ProjectPackage', backref='project', lazy='dynamic', cascade="all, delete-orphan")
    rfis = db.relationship('ProjectRFI', backref='project', lazy='dynamic', cascade="all, delete-orphan")

    def to_dict(self):
        return {
            'id': self.id,
            'projectNo': self.project_no,
            'solProjectNo': self.sol_project_no,
            'name': self.name,
            'description': self.description,
            'clientId': self.client_id,
            'status': self.status,
            'priority': self.priority,
            'progress': self.progress,
            'branch': self.branch,
            'solTLId': self.sol_tl_id,
            'clientPm': self.client_pm,
            'startDate': self.start_date.isoformat() if self.start_date else None,
            'endDate': self.end_date.isoformat() if self.end_date else None,
            'expectedCompletion': self.expected_completion.isoformat() if self.expected_completion else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'lastUpdated': self.last_updated.isoformat() if self.last_updated else None,
        }


class ProjectPackage(db.Model):
    # The live table was created with unquoted identifiers, so its columns are lower-case.
    __tablename__ = 'ProjectPackage'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column('projectid', db.Integer, db.ForeignKey('Project.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    package_number = db.Column('packagenumber', db.String(60))
    tentative_date = db.Column('tentativedate', db.Date)
    status = db.Column(db.String(40))
    created_at = db.Column('createdat', db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'projectid': self.project_id,
            'name': self.name,
            'packagenumber': self.package_number,
            'tentativedate': self.tentative_date.isoformat() if self.tentative_date else None,
            'status': self.status,
            'createdat': self.created_at.isoformat() if self.created_at else None,
        }


class ProjectRFI(db.Model):
    __tablename__ = 'ProjectRFI'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column('projectId', db.Integer, db.ForeignKey('Project.id'), nullable=False, index=True)
    rfi_number = db.Column('rfiNumber', db.String(60))
    date = db.Column(db.Date)
    status = db.Column(db.String(40))
    remark = db.Column(db.Text)
    created_at = db.Column('createdAt', db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'projectId': self.project_id,
            'rfiNumber': self.rfi_number,
            'date': self.date.isoformat() if self.date else None,
            'status': self.status,
            'remark': self.remark,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
