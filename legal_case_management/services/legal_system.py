"""
Main system class for the Legal Case Management Service.
"""

import logging

from legal_case_management.config import AppSettings, get_settings
from legal_case_management.services.borrowers import BorrowerDirectory
from legal_case_management.services.case_ids import CaseIdService
from legal_case_management.services.communication import CommunicationService
from legal_case_management.services.documents import DocumentService
from legal_case_management.services.error_logs import ErrorLogService
from legal_case_management.services.events import EventBus, MasterDataListener
from legal_case_management.services.lawyer_allocations import LawyerAllocationService
from legal_case_management.services.lawyers import LawyerService
from legal_case_management.services.legal_cases import LegalCaseService
from legal_case_management.services.master_data.channels import ChannelService
from legal_case_management.services.master_data.dpd_buckets import DpdBucketService
from legal_case_management.services.master_data.languages import LanguageService
from legal_case_management.services.master_data.notice_templates import NoticeTemplateService
from legal_case_management.services.master_data.products import ProductHierarchy
from legal_case_management.services.master_data.schema_configurations import SchemaConfigurationService
from legal_case_management.services.master_data.states import StateService
from legal_case_management.services.master_data.templates import CommunicationTemplateService
from legal_case_management.services.notices import NoticeService
from legal_case_management.services.notifications import NotificationService
from legal_case_management.services.sms_gateway import SmsGatewayClient
from legal_case_management.services.template_engine import TemplateEngine
from legal_case_management.services.template_rendering import NoticeRenderer
from legal_case_management.services.timeline import TimelineService
from legal_case_management.services.triggers import TriggerService


class LegalCaseSystem:
    def __init__(self, store=None, settings: AppSettings | None = None, sms_gateway: SmsGatewayClient | None = None):
        """Wire the store and every service together.

        Args:
            store: Document store. Defaults to an ``ArangoStore`` built from settings.
            settings: App settings. Defaults to ``get_settings()``.
            sms_gateway: SMS gateway client. Defaults to one built from settings (None when disabled).
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings or get_settings()
        if store is None:
            from legal_case_management.storage.arango_store import ArangoStore

            store = ArangoStore(
                host=self.settings.arango_host,
                db_name=self.settings.arango_db_name,
                username=self.settings.arango_username,
                password=self.settings.arango_password,
                max_retries=self.settings.arango_max_retries,
                retry_delay=self.settings.arango_retry_delay,
            )
        self.store = store
        self.sms_gateway = sms_gateway if sms_gateway is not None else SmsGatewayClient.from_settings(self.settings)

        s = self.settings
        self.events = EventBus()
        self.master_data_listener = MasterDataListener(self.events)

        # master data
        self.states = StateService(store, self.events, s)
        self.dpd_buckets = DpdBucketService(store, self.events, s)
        self.languages = LanguageService(store, self.events, s)
        self.channels = ChannelService(store, self.events, s)
        self.products = ProductHierarchy(store, self.events, s)
        self.templates = CommunicationTemplateService(store, self.events, self.sms_gateway, s)
        self.notice_templates = NoticeTemplateService(store, self.events, s)
        self.schema_configurations = SchemaConfigurationService(store, self.events, s)

        # cases and lawyers
        self.borrowers = BorrowerDirectory(store, s)
        self.case_ids = CaseIdService(store, s)
        self.timeline = TimelineService(store, s)
        self.notifications = NotificationService(store, s)
        self.legal_cases = LegalCaseService(store, self.borrowers, self.case_ids, self.timeline, self.notifications, s)
        self.lawyers = LawyerService(store, s)
        self.allocations = LawyerAllocationService(store, self.lawyers, self.timeline, self.notifications, s)
        self.documents = DocumentService(store, self.timeline, self.notifications, s)

        # notices and outreach
        self.communication = CommunicationService(store, self.sms_gateway, s)
        self.template_engine = TemplateEngine(store, s)
        self.renderer = NoticeRenderer(self.borrowers, self.template_engine, s)
        self.notices = NoticeService(
            store,
            self.borrowers,
            self.template_engine,
            self.renderer,
            self.communication,
            s,
            documents=self.documents,
        )
        self.triggers = TriggerService(store, self.borrowers, self.dpd_buckets, s)

        # operations
        self.error_logs = ErrorLogService(store, self.notifications, self.communication, s)

        self.logger.info(
            f"Initialized LegalCaseSystem (sms_gateway={'enabled' if self.sms_gateway else 'disabled'})"
        )
