from datetime import datetime
from models.db import db


class ErrorLog(db.Model):
    __tablename__ = "error_logs"

    id = db.Column(db.Integer, primary_key=True)
    error_code = db.Column(db.String(80), nullable=True)
    module = db.Column(db.String(120), nullable=True)      # blueprint / module name
    function_name = db.Column(db.String(120), nullable=True)
    details = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
