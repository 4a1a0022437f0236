import uuid

from sqlalchemy import JSON, BigInteger, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import relationship

from onboard_bot.infrastructure.db.base import Base


class OnboardingSessionRow(Base):
    __tablename__ = "onboarding_sessions"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject_key = Column(String(64), nullable=False, index=True)
    channel = Column(String(16), nullable=False, default="whatsapp")
    language = Column(String(5), nullable=False, default="en")
    plan = Column(String(20), nullable=False, default="smb")
    current_step = Column(String(50), nullable=False, default="name")
    answers = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="in_progress", index=True)

    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id"), nullable=True)
    invite_id = Column(String(100), nullable=True)
    invite_url = Column(Text, nullable=True)
    drive_folder_url = Column(Text, nullable=True)
    provisioning = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    client = relationship("Client", back_populates="sessions")

    __table_args__ = (
        Index("ix_onboarding_sessions_subject_status", "subject_key", "status"),
        # At most one in-progress session per subject key
        Index(
            "uq_onboarding_sessions_active_subject",
            "subject_key",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
    )


class Client(Base):
    __tablename__ = "clients"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    plan = Column(String(20), nullable=False, default="smb")
    industry = Column(Text, nullable=True)
    website = Column(String(300), nullable=True)
    description = Column(Text, nullable=True)
    product_service = Column(Text, nullable=True)
    pricing = Column(Text, nullable=True)
    avg_transaction_value = Column(String(100), nullable=True)
    target_audience = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    competitors = Column(JSON, nullable=False, default=list)
    company_size = Column(String(100), nullable=True)
    sales_process = Column(Text, nullable=True)
    sales_cycle = Column(String(100), nullable=True)
    channels_have = Column(Text, nullable=True)
    channels_need = Column(Text, nullable=True)
    current_campaigns = Column(Text, nullable=True)
    monthly_budget_cents = Column(BigInteger, nullable=False, default=0)
    goals = Column(JSON, nullable=False, default=list)
    pains = Column(Text, nullable=True)
    additional_info = Column(Text, nullable=True)

    drive_folder_id = Column(String(100), nullable=True)
    drive_folder_url = Column(Text, nullable=True)
    profile_record_id = Column(String(100), nullable=True)
    conversation_log_id = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    contacts = relationship("ClientContact", back_populates="client")
    sessions = relationship("OnboardingSessionRow", back_populates="client")


class ClientContact(Base):
    __tablename__ = "client_contacts"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject_key = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=True)
    channel = Column(String(16), nullable=False, default="whatsapp")
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    client = relationship("Client", back_populates="contacts")


class ConversationMessage(Base):
    __tablename__ = "conversation_messages"
    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_key = Column(String(64), nullable=False, index=True)
    role = Column(String(16), nullable=False)  # user | assistant
    body = Column("text", Text, nullable=False)
    channel = Column(String(16), nullable=False, default="whatsapp")
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))


class OutboundDeadLetter(Base):
    __tablename__ = "outbound_dead_letters"
    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient = Column(String(64), nullable=False, index=True)
    channel = Column(String(16), nullable=False, default="whatsapp")
    body = Column("text", Text, nullable=False)
    failure_reason = Column(String(50), nullable=False)
    last_error = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
