from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text
from .db import Base


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(32), primary_key=True)
	email = Column(String(256), unique=True, index=True, nullable=False)
	display_name = Column(String(128), nullable=False)
	password_hash = Column(String(256), nullable=False)
	photo_url = Column(String(512), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# Token jti; deleting the row revokes the token
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=True)


class StoreNode(Base):
	__tablename__ = "store_nodes"
	# Full slash-separated path, e.g. lingoecho/users/<uid>/sessions/<push id>
	path = Column(String(512), primary_key=True)
	parent = Column(String(512), index=True, nullable=False)
	key = Column(String(64), nullable=False)
	value_json = Column(Text, nullable=False)  # JSON string snapshot
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
