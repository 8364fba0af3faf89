from models import db


class UserProfile(db.Model):
    """Staff flags mirrored from the identity provider's user profiles."""

    __tablename__ = "user_profile"

    uid = db.Column(db.String(128), primary_key=True)
    email = db.Column(db.String(200), nullable=True, index=True)
    name = db.Column(db.String(100), nullable=True)
    is_hr = db.Column(db.Boolean, nullable=False, default=False)
    is_instructor = db.Column(db.Boolean, nullable=False, default=False)
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False)

    @property
    def is_staff(self):
        return bool(self.is_hr or self.is_instructor or self.is_super_admin)
