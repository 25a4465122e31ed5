from fleet_dispatch import db
from datetime import datetime
from fleet_dispatch.buisness.core.data_insertion_mixin import DataInsertionMixin


class JobAssignment(DataInsertionMixin, db.Model):
    """
    Binding of one job to one vehicle (and optionally a driver).

    Rows are never updated in place: a reassignment deletes the old row and
    inserts a new one inside the same transaction. The unique job_id keeps
    "at most one assignment per job" true at the storage layer.
    """
    __tablename__ = 'job_assignments'
    __table_args__ = (
        db.UniqueConstraint('job_id', name='uq_job_assignments_job'),
        db.Index('ix_job_assignments_vehicle', 'vehicle_id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id'), nullable=False)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id'), nullable=False)
    driver_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    assigned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    job = db.relationship('Job', back_populates='assignment')
    vehicle = db.relationship('Vehicle')
    driver = db.relationship('User', foreign_keys=[driver_id])
    assigned_by = db.relationship('User', foreign_keys=[assigned_by_id])

    def __repr__(self):
        return f'<JobAssignment job={self.job_id} vehicle={self.vehicle_id}>'
