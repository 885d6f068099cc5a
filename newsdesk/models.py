from newsdesk import db
from newsdesk.lib.time import utcnow_naive


class KeyValueCollection(db.Model):
    """
    One durable collection per row.

    The whole collection is stored as a JSON array in ``value`` and always
    replaced as a unit, so a row update is the atomic write for its key.
    """
    __tablename__ = 'kv_collection'

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.Text, nullable=False, default='[]')
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    def __repr__(self):
        return f'<KeyValueCollection {self.key}>'
