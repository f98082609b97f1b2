"""
Console sessions: everything one signed-in church console works with.

The HTTP layer asks the registry for the console of the authenticated user;
the first request of a user builds it, which triggers the initial load of
every collection.
"""
import logging
import threading
from datetime import date
from typing import Any, Dict, Optional

from models import CATEGORY_COLLECTIONS, MEMBER_CATEGORIES
from services.identity_provider import AuthSession
from utils.categories import CategoryCollection
from utils.church_profile import ChurchProfileStore
from utils.errors import NotFoundError
from utils.financial_records import ExpenseCollection, IncomeCollection
from utils.members import MemberCategoryCollection, MemberCollection
from utils.reconciliation import DEFAULT_RECONCILE_DELAY

logger = logging.getLogger(__name__)


class ChurchConsole:

    def __init__(self, store, session: AuthSession, birthday_service, backup_service,
                 notifier=None, reconcile_delay: float = DEFAULT_RECONCILE_DELAY):
        self.store = store
        self.session = session
        self.notifier = notifier
        self.reconcile_delay = reconcile_delay

        self.expenses = ExpenseCollection(store, session, notifier=notifier, reconcile_delay=reconcile_delay)
        self.income = IncomeCollection(store, session, notifier=notifier, reconcile_delay=reconcile_delay)
        self.members = MemberCollection(store, session, reconcile_delay=reconcile_delay)
        self.member_categories = MemberCategoryCollection(store, session, reconcile_delay=reconcile_delay)
        self.church_profile = ChurchProfileStore(store, session)
        self.birthdays = birthday_service
        self.backups = backup_service

        self._categories: Dict[str, CategoryCollection] = {MEMBER_CATEGORIES: self.member_categories}
        self._lock = threading.Lock()

    @property
    def owner_id(self) -> Optional[str]:
        return self.session.owner_id

    def categories(self, collection_name: str) -> CategoryCollection:
        """
        Category list by collection name (despesaCategories, paymentMethods,
        ofertaTypes, memberCategories), loaded on first use.

        Raises:
            NotFoundError: unknown category collection
        """
        if collection_name not in CATEGORY_COLLECTIONS:
            raise NotFoundError(f"Unknown category collection '{collection_name}'")
        with self._lock:
            if collection_name not in self._categories:
                self._categories[collection_name] = CategoryCollection(
                    self.store, self.session,
                    collection_name=collection_name,
                    reconcile_delay=self.reconcile_delay
                )
            return self._categories[collection_name]

    def check_birthdays(self, today: Optional[date] = None) -> int:
        """Send today's and tomorrow's birthday notifications not sent yet"""
        return self.birthdays.run_daily_check(self.owner_id, self.members.records, today)

    def birthday_view(self, today: Optional[date] = None) -> Dict[str, Any]:
        self.check_birthdays(today)
        return self.birthdays.birthdays_for(self.owner_id, self.members.records, today)

    def congratulate(self, member_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Send congratulations to a member and mark them for today.

        Raises:
            NotFoundError: no such member for this owner
            PersistenceError: the marker could not be written
        """
        member = self.members.find(member_id)
        self.birthdays.send_congratulations(member)
        self.birthdays.mark_congratulated(self.owner_id, member_id, today)
        return member

    def close(self):
        collections = [self.expenses, self.income, self.members, self.church_profile]
        collections.extend(self._categories.values())
        for collection in collections:
            collection.close()


class ConsoleRegistry:
    """One ChurchConsole per signed-in owner"""

    def __init__(self, store, birthday_service, backup_service, notifier=None, scheduler=None,
                 reconcile_delay: float = DEFAULT_RECONCILE_DELAY,
                 auto_backup_interval_hours: int = 24, birthday_check_hour: int = 9):
        self.store = store
        self.birthday_service = birthday_service
        self.backup_service = backup_service
        self.notifier = notifier
        self.scheduler = scheduler
        self.reconcile_delay = reconcile_delay
        self.auto_backup_interval_hours = auto_backup_interval_hours
        self.birthday_check_hour = birthday_check_hour
        self._consoles: Dict[str, ChurchConsole] = {}
        self._lock = threading.Lock()

    def get(self, user: Dict[str, Any]) -> ChurchConsole:
        """Console for a verified user, created (and loaded) on first use"""
        uid = user['uid']
        with self._lock:
            console = self._consoles.get(uid)
            if console is not None:
                console.session.restore(user)
                return console

            session = AuthSession(user=user)
            console = ChurchConsole(
                self.store, session,
                birthday_service=self.birthday_service,
                backup_service=self.backup_service,
                notifier=self.notifier,
                reconcile_delay=self.reconcile_delay
            )
            self._consoles[uid] = console

        logger.info(f"Console opened for user {uid}")
        if self.scheduler is not None:
            self.scheduler.schedule_auto_backup(uid, self.auto_backup_interval_hours)
            self.scheduler.schedule_birthday_check(uid, self.birthday_check_hour)
        # The cron job may already have run today
        console.check_birthdays()
        return console

    def remove(self, uid: str) -> bool:
        """Sign a console out and drop it"""
        with self._lock:
            console = self._consoles.pop(uid, None)
        if console is None:
            return False
        console.session.sign_out()
        console.close()
        if self.scheduler is not None:
            self.scheduler.unschedule(uid)
        logger.info(f"Console closed for user {uid}")
        return True

    def __contains__(self, uid: str) -> bool:
        return uid in self._consoles

    def close_all(self):
        for uid in list(self._consoles):
            self.remove(uid)
