from fleet_dispatch import db
from fleet_dispatch.data.core.user_created_base import UserCreatedBase
from fleet_dispatch.data.dispatching.enums import JobStatus, JobType, JobPriority, enum_column


class Job(UserCreatedBase):
    __tablename__ = 'jobs'
    __table_args__ = (
        db.CheckConstraint('scheduled_time_start < scheduled_time_end', name='ck_jobs_window_order'),
        db.Index('ix_jobs_schedule', 'scheduled_date', 'scheduled_time_start'),
    )

    job_number = db.Column(db.String(20), unique=True, nullable=False)
    job_type = db.Column(enum_column(JobType, 'job_type'), nullable=False)
    priority = db.Column(enum_column(JobPriority, 'job_priority'), nullable=False, default=JobPriority.NORMAL)

    # Customer
    customer_name = db.Column(db.String(120), nullable=False)
    customer_phone = db.Column(db.String(30), nullable=True)
    customer_address = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)

    # Schedule: half-open window [start, end) on scheduled_date
    scheduled_date = db.Column(db.Date, nullable=False)
    scheduled_time_start = db.Column(db.Time, nullable=False)
    scheduled_time_end = db.Column(db.Time, nullable=False)
    estimated_duration_minutes = db.Column(db.Integer, nullable=True)

    # Lifecycle (mutated only through JobStatusManager / AssignmentManager)
    current_status = db.Column(enum_column(JobStatus, 'job_status'), nullable=False, default=JobStatus.PENDING)

    assignment = db.relationship('JobAssignment', uselist=False, back_populates='job')

    def __repr__(self):
        return f'<Job {self.job_number} [{self.current_status.value if self.current_status else None}]>'
