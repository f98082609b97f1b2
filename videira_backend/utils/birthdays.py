"""
Birthday view derived from the membership roll, plus the per-day
congratulation and notification markers.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from models import BIRTHDAY_NOTIFICATIONS, CONGRATULATED, MEMBERS
from utils.errors import PersistenceError, QueryError
from utils.formatting import parse_date

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 60
TODAY = 'hoje'
TOMORROW = 'amanha'


def _occurrence(birth: date, year: int) -> date:
    try:
        return birth.replace(year=year)
    except ValueError:
        # 29 February in a non-leap year
        return date(year, 2, 28)


def calculate_age(birth: date, today: date) -> int:
    """Whole years, one less while this year's birthday is still ahead"""
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def days_until_birthday(birth: date, today: date) -> int:
    """0 on the birthday itself, otherwise days until the next one"""
    upcoming = _occurrence(birth, today.year)
    if upcoming < today:
        upcoming = _occurrence(birth, today.year + 1)
    return (upcoming - today).days


def build_birthday_view(members: Iterable[Dict[str, Any]], today: Optional[date] = None,
                        congratulated_ids: Iterable[str] = ()) -> Dict[str, List[Dict[str, Any]]]:
    """
    Classify members with a birth date into today / tomorrow / upcoming
    (next 60 days) / this_month. Each list is ordered by days remaining.
    """
    today = today or date.today()
    congratulated = set(congratulated_ids)
    entries = []

    for member in members:
        birth = parse_date(member.get('dataNascimento'))
        if birth is None:
            continue
        entries.append({
            'id': member['id'],
            'nome': member.get('nome', ''),
            'email': member.get('email'),
            'telefone': member.get('telefone'),
            'dataNascimento': birth.isoformat(),
            'idade': calculate_age(birth, today),
            'diasRestantes': days_until_birthday(birth, today),
            'parabenizado': member['id'] in congratulated,
        })

    entries.sort(key=lambda entry: entry['diasRestantes'])

    return {
        'today': [e for e in entries if e['diasRestantes'] == 0],
        'tomorrow': [e for e in entries if e['diasRestantes'] == 1],
        'upcoming': [e for e in entries if e['diasRestantes'] <= UPCOMING_WINDOW_DAYS],
        'this_month': [e for e in entries if parse_date(e['dataNascimento']).month == today.month],
    }


class BirthdayService:
    """
    Birthday notifications and congratulation tracking.

    Both markers are remote documents keyed by owner, member and day, so a
    notification goes out at most once per member per day no matter how many
    consoles or scheduler runs check the same birthdays.
    """

    def __init__(self, store, notifier=None):
        self.store = store
        self.notifier = notifier

    @staticmethod
    def congratulated_key(owner_id: str, member_id: str, day: date) -> str:
        return f"{owner_id}_{member_id}_{day.isoformat()}"

    @staticmethod
    def notification_key(owner_id: str, member_id: str, kind: str, day: date) -> str:
        return f"{owner_id}_{member_id}_{kind}_{day.isoformat()}"

    def is_congratulated(self, owner_id: str, member_id: str, today: Optional[date] = None) -> bool:
        today = today or date.today()
        try:
            return self.store.get(CONGRATULATED, self.congratulated_key(owner_id, member_id, today)) is not None
        except QueryError as e:
            logger.error(f"Error checking congratulation marker for member {member_id}: {e}")
            return False

    def mark_congratulated(self, owner_id: str, member_id: str, today: Optional[date] = None):
        """
        Raises:
            PersistenceError: the marker could not be written
        """
        today = today or date.today()
        self.store.set(CONGRATULATED, self.congratulated_key(owner_id, member_id, today), {
            'membroId': member_id,
            'userId': owner_id,
            'data': today.isoformat(),
            'timestamp': datetime.utcnow()
        })
        logger.info(f"Member {member_id} marked as congratulated")

    def send_congratulations(self, member: Dict[str, Any]) -> bool:
        logger.info(f"Sending congratulations to {member.get('nome')}")
        if self.notifier is None:
            return False
        return self.notifier.send({
            'title': 'Parabéns Enviados! 🎉',
            'body': f"Mensagem de aniversário enviada para {member.get('nome', '')}",
            'tag': f"parabens-enviado-{member['id']}"
        })

    def already_notified(self, owner_id: str, member_id: str, kind: str, today: Optional[date] = None) -> bool:
        today = today or date.today()
        try:
            key = self.notification_key(owner_id, member_id, kind, today)
            return self.store.get(BIRTHDAY_NOTIFICATIONS, key) is not None
        except QueryError as e:
            logger.error(f"Error checking birthday notification marker: {e}")
            return False

    def notify_birthday(self, owner_id: str, entry: Dict[str, Any], kind: str,
                        today: Optional[date] = None) -> bool:
        """
        Send the today/tomorrow birthday notification for one member, once per day.

        Returns:
            bool: True if a notification was dispatched by this call
        """
        today = today or date.today()
        if self.already_notified(owner_id, entry['id'], kind, today):
            return False

        if kind == TODAY:
            options = {
                'title': '🎉 Aniversário Hoje!',
                'body': f"{entry['nome']} está fazendo {entry['idade']} anos hoje!",
                'requireInteraction': True
            }
        else:
            options = {
                'title': '🎂 Aniversário Amanhã!',
                'body': f"{entry['nome']} fará {entry['idade'] + 1} anos amanhã",
            }
        options['tag'] = f"aniversario-{kind}-{entry['id']}"

        if self.notifier is not None:
            self.notifier.send(options)

        try:
            self.store.set(BIRTHDAY_NOTIFICATIONS, self.notification_key(owner_id, entry['id'], kind, today), {
                'membroId': entry['id'],
                'userId': owner_id,
                'tipo': kind,
                'data': today.isoformat(),
                'timestamp': datetime.utcnow()
            })
        except PersistenceError as e:
            logger.error(f"Error marking birthday notification for member {entry['id']}: {e}")
        return True

    def birthdays_for(self, owner_id: str, members: Iterable[Dict[str, Any]],
                      today: Optional[date] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Birthday view with each member's congratulated flag for today"""
        today = today or date.today()
        members = [m for m in members if parse_date(m.get('dataNascimento'))]
        congratulated = [m['id'] for m in members if self.is_congratulated(owner_id, m['id'], today)]
        return build_birthday_view(members, today, congratulated)

    def run_daily_check(self, owner_id: str, members: Optional[List[Dict[str, Any]]] = None,
                        today: Optional[date] = None) -> int:
        """
        Notify today's and tomorrow's birthdays not yet congratulated.

        Returns:
            int: Number of notifications dispatched
        """
        today = today or date.today()
        try:
            if members is None:
                members = self.store.query(MEMBERS, {'userId': owner_id})
            view = self.birthdays_for(owner_id, members, today)
        except QueryError as e:
            logger.error(f"Birthday check failed for user {owner_id}: {e}")
            return 0

        sent = 0
        for kind, bucket in ((TODAY, view['today']), (TOMORROW, view['tomorrow'])):
            for entry in bucket:
                if entry['parabenizado']:
                    continue
                if self.notify_birthday(owner_id, entry, kind, today):
                    sent += 1
        logger.info(f"Birthday check for user {owner_id}: {sent} notifications sent")
        return sent
