"""Key/value store for small JSON blobs (announcer credentials, settings)."""

from emoteguess import db
from emoteguess.models import StoreBlob

ANNOUNCER_KEY = 'announcer'


def get(key, default=None):
    blob = StoreBlob.query.filter_by(key=key).first()
    if blob is None:
        return default
    return blob.data


def set(key, value):
    blob = StoreBlob.query.filter_by(key=key).first()
    if blob is None:
        blob = StoreBlob(key=key)
    blob.data = value
    db.session.add(blob)
    db.session.commit()
    return value


def delete(key) -> bool:
    deleted = StoreBlob.query.filter_by(key=key).delete()
    db.session.commit()
    return bool(deleted)
