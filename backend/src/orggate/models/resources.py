"""Protected resource models.

Only the ownership columns the access verifier needs are modelled here; the
rest of each resource lives in the surrounding platform.
"""

import uuid

from sqlalchemy import Column, ForeignKey, Text, Uuid

from .base import Base, UTCDateTime, utcnow


class Project(Base):
    __tablename__ = "project"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class Document(Base):
    """Documents are owned through their project."""
    __tablename__ = "document"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("project.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class Asset(Base):
    """Assets carry an organization directly, or inherit it from a project."""
    __tablename__ = "asset"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="RESTRICT"), nullable=True)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("project.id", ondelete="SET NULL"), nullable=True)
    name = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class ViewScope(Base):
    __tablename__ = "view_scope"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class DataRoom(Base):
    __tablename__ = "data_room"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
