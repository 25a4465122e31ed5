from fleet_dispatch import db
from datetime import datetime
from sqlalchemy import event
from fleet_dispatch.buisness.core.data_insertion_mixin import DataInsertionMixin
from fleet_dispatch.data.dispatching.enums import JobStatus, enum_column


class JobStatusChange(DataInsertionMixin, db.Model):
    """Append-only audit record of one job status transition."""
    __tablename__ = 'job_status_changes'
    __table_args__ = (
        db.Index('ix_job_status_changes_job', 'job_id', 'changed_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id'), nullable=False)
    old_status = db.Column(enum_column(JobStatus, 'job_status_old'), nullable=False)
    new_status = db.Column(enum_column(JobStatus, 'job_status_new'), nullable=False)
    changed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    reason = db.Column(db.Text, nullable=True)
    changed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    job = db.relationship('Job')
    changed_by = db.relationship('User')

    def __repr__(self):
        return f'<JobStatusChange job={self.job_id} {self.old_status.value} -> {self.new_status.value}>'


class AppendOnlyViolation(Exception):
    """Raised when code tries to modify or delete a status history record"""
    pass


@event.listens_for(JobStatusChange, 'before_update')
def _reject_update(mapper, connection, target):
    raise AppendOnlyViolation(f"Status history record {target.id} is immutable")


@event.listens_for(JobStatusChange, 'before_delete')
def _reject_delete(mapper, connection, target):
    raise AppendOnlyViolation(f"Status history record {target.id} cannot be deleted")
