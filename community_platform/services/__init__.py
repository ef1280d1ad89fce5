"""Domain services — stateless, AsyncSession passed per call."""

from community_platform.services.accounts import AccountService, account_service
from community_platform.services.audit import AuditTrailWriter, audit_trail
from community_platform.services.categories import CategoryService, category_service
from community_platform.services.reports import ReportService, report_service
from community_platform.services.sessions import SessionLifecycleManager, session_manager
from community_platform.services.soft_delete import SoftDeleteGuard, clamp_paging

__all__ = [
    "AccountService",
    "AuditTrailWriter",
    "CategoryService",
    "ReportService",
    "SessionLifecycleManager",
    "SoftDeleteGuard",
    "account_service",
    "audit_trail",
    "category_service",
    "clamp_paging",
    "report_service",
    "session_manager",
]
