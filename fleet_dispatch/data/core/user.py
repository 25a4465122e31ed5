from fleet_dispatch import db
from datetime import datetime
from fleet_dispatch.buisness.core.data_insertion_mixin import DataInsertionMixin
from fleet_dispatch.data.dispatching.enums import UserRole, enum_column


class User(DataInsertionMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    full_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(120), unique=True, nullable=True)
    phone = db.Column(db.String(30), nullable=True)
    role = db.Column(enum_column(UserRole, 'user_role'), nullable=False, default=UserRole.DISPATCHER)
    is_active = db.Column(db.Boolean, default=True)
    is_system = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def display_name(self):
        return self.full_name or self.username

    def __repr__(self):
        return f'<User {self.username}>'
