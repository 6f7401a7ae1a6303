"""Built-in capability catalog.

Seeded into the capability table by seed_capability_catalog(). Capability
ids are stable opaque keys; name and description may be refreshed on reseed.
"""

from dataclasses import dataclass
from typing import Optional


class RiskLevel:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CapabilityCategory:
    CHANNEL = "channel"
    QUERY = "query"
    DOCUMENT = "document"
    OPERATION = "operation"
    BROWSER = "browser"
    SKILL = "skill"
    CRON = "cron"
    PAYMENT = "payment"


@dataclass(frozen=True)
class CapabilityDefinition:
    capability_id: str
    name: str
    description: Optional[str]
    category: str
    risk_level: str
    requires_approval: bool = False
    requires_2fa: bool = False
    requires_admin: bool = False


def _channel(key: str, name: str, description: str) -> CapabilityDefinition:
    return CapabilityDefinition(f"channel.{key}", name, description, CapabilityCategory.CHANNEL, RiskLevel.LOW)


def _query(capability_id: str, name: str, description: str) -> CapabilityDefinition:
    return CapabilityDefinition(capability_id, name, description, CapabilityCategory.QUERY, RiskLevel.LOW)


BUILT_IN_CAPABILITIES = (
    _channel("whatsapp", "WhatsApp Channel", "Receive and send WhatsApp messages"),
    _channel("telegram", "Telegram Channel", "Receive and send Telegram messages"),
    _channel("slack", "Slack Channel", "Receive and send Slack messages"),
    _channel("discord", "Discord Channel", "Receive and send Discord messages"),
    _channel("msteams", "Microsoft Teams Channel", "Receive and send Teams messages"),
    _channel("webchat", "Web Chat", "Chat via the web interface"),

    _query("kiisha.portfolio.summary", "Portfolio Summary", "View portfolio overview with capacity, revenue, and alerts"),
    _query("kiisha.portfolio.metrics", "Portfolio Metrics", "View detailed portfolio performance metrics"),
    _query("kiisha.project.details", "Project Details", "View project information and status"),
    _query("kiisha.project.list", "List Projects", "List all accessible projects"),
    _query("kiisha.documents.status", "Document Status", "Check document checklist and verification progress"),
    _query("kiisha.documents.list", "List Documents", "List documents for a project"),
    _query("kiisha.alerts.list", "List Alerts", "View active alerts across portfolio"),
    _query("kiisha.tickets.list", "List Tickets", "View open maintenance tickets"),

    CapabilityDefinition(
        "kiisha.document.upload", "Upload Document", "Upload and categorize documents via chat",
        CapabilityCategory.DOCUMENT, RiskLevel.MEDIUM, requires_approval=True,
    ),
    CapabilityDefinition(
        "kiisha.document.extract", "Extract Document Data", "Extract data from uploaded documents",
        CapabilityCategory.DOCUMENT, RiskLevel.MEDIUM, requires_approval=True,
    ),

    CapabilityDefinition(
        "kiisha.ticket.create", "Create Ticket", "Create maintenance work orders",
        CapabilityCategory.OPERATION, RiskLevel.MEDIUM, requires_approval=True,
    ),
    CapabilityDefinition(
        "kiisha.rfi.respond", "Respond to RFI", "Respond to Requests for Information",
        CapabilityCategory.OPERATION, RiskLevel.MEDIUM, requires_approval=True,
    ),
    CapabilityDefinition(
        "kiisha.alert.acknowledge", "Acknowledge Alert", "Acknowledge and resolve alerts",
        CapabilityCategory.OPERATION, RiskLevel.MEDIUM, requires_approval=True,
    ),

    CapabilityDefinition(
        "browser.portal_login", "Portal Login", "Login to external vendor portals",
        CapabilityCategory.BROWSER, RiskLevel.HIGH, requires_approval=True, requires_admin=True,
    ),
    CapabilityDefinition(
        "browser.data_scrape", "Data Scraping", "Scrape data from external portals",
        CapabilityCategory.BROWSER, RiskLevel.HIGH, requires_approval=True, requires_admin=True,
    ),
    CapabilityDefinition(
        "browser.form_submit", "Form Submission", "Submit forms on external sites",
        CapabilityCategory.BROWSER, RiskLevel.CRITICAL, requires_approval=True, requires_2fa=True, requires_admin=True,
    ),

    CapabilityDefinition(
        "cron.compliance_check", "Compliance Check", "Scheduled compliance obligation checks",
        CapabilityCategory.CRON, RiskLevel.LOW,
    ),
    CapabilityDefinition(
        "cron.report_generation", "Report Generation", "Scheduled report generation",
        CapabilityCategory.CRON, RiskLevel.MEDIUM, requires_approval=True,
    ),
    CapabilityDefinition(
        "cron.data_collection", "Data Collection", "Scheduled automated data collection",
        CapabilityCategory.CRON, RiskLevel.MEDIUM, requires_approval=True,
    ),

    CapabilityDefinition(
        "kiisha.payment.initiate", "Initiate Payment", "Initiate payment transactions",
        CapabilityCategory.PAYMENT, RiskLevel.CRITICAL, requires_approval=True, requires_2fa=True, requires_admin=True,
    ),
    CapabilityDefinition(
        "kiisha.user.invite", "Invite User", "Invite new users to organization",
        CapabilityCategory.OPERATION, RiskLevel.HIGH, requires_approval=True, requires_admin=True,
    ),
    CapabilityDefinition(
        "kiisha.data.export", "Export Data", "Export organization data",
        CapabilityCategory.OPERATION, RiskLevel.HIGH, requires_approval=True, requires_2fa=True, requires_admin=True,
    ),
)
