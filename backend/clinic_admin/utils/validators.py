# clinic_admin/utils/validators.py
"""
Input validation utilities
"""
import re
from datetime import datetime, date
from typing import Any, Dict, Optional, Tuple

from clinic_admin.models.doctor import MIN_PROCEDURE_MINUTES, PRICE_TO_NEGOTIATE
from clinic_admin.utils.dates import now_utc, parse_datetime
from clinic_admin.utils.exceptions import UnprocessableError, ValidationError

_HHMM = re.compile(r'^\d{2}:\d{2}$')


class InputValidator:
    """Validates user inputs and API parameters"""

    @staticmethod
    def require_fields(data: Optional[Dict], *fields: str) -> Dict:
        """Ensure a JSON body exists and the listed fields are truthy"""
        if not isinstance(data, dict):
            raise ValidationError("Request body is required")

        missing = [name for name in fields if not data.get(name)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        return data

    @staticmethod
    def validate_date_string(date_str: Optional[str], field: str = 'date') -> date:
        """Validate and parse a YYYY-MM-DD query parameter"""
        if not date_str:
            raise ValidationError(f"Parameter '{field}' is required")

        try:
            return datetime.strptime(date_str[:10], '%Y-%m-%d').date()
        except ValueError:
            raise ValidationError(f"Invalid {field} format. Use YYYY-MM-DD")

    @classmethod
    def validate_period(cls, args) -> Tuple[date, date]:
        """Both 'start' and 'end' are mandatory for every report"""
        if not args.get('start') or not args.get('end'):
            raise ValidationError("Parameters 'start' and 'end' are required")

        start = cls.validate_date_string(args.get('start'), 'start')
        end = cls.validate_date_string(args.get('end'), 'end')
        if end < start:
            raise ValidationError("'end' must not be before 'start'")
        return start, end

    @staticmethod
    def validate_start_time(value: Any, now: Optional[datetime] = None) -> datetime:
        """Parse an appointment start and reject past timestamps"""
        try:
            start = parse_datetime(value)
        except (ValueError, OverflowError):
            raise ValidationError("Invalid start_time. Use ISO-8601, e.g. 2025-06-10T09:00")

        if start < (now or now_utc()):
            raise ValidationError("Cannot book appointments in the past")
        return start

    @staticmethod
    def validate_optional_text(value: Any, field: str) -> Optional[str]:
        """Blank becomes None; anything but a string is rejected"""
        if value is None or value == '':
            return None
        if not isinstance(value, str):
            raise ValidationError(f"Field '{field}' must be text")
        return value

    @staticmethod
    def validate_message_content(content: Any) -> str:
        """Validate an operator reply"""
        if not isinstance(content, str) or not content.strip():
            raise UnprocessableError("Field 'message' is required")
        return content.strip()

    @staticmethod
    def normalize_category(category: Any, collapse_spaces: bool = False) -> str:
        """Categories are stored lowercase; file categories also swap spaces for '_'"""
        if not isinstance(category, str):
            return ''
        category = category.lower().strip()
        if collapse_spaces:
            category = re.sub(r'\s+', '_', category)
        return category

    @staticmethod
    def validate_chunk_size(value: Any, default: int, minimum: int, maximum: int) -> int:
        """Clamp the requested chunk size; non-numbers fall back to the default"""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        return int(min(maximum, max(minimum, value)))

    @staticmethod
    def validate_pagination(args, default_limit: int = 20, max_limit: int = 100) -> Tuple[int, int]:
        try:
            page = int(args.get('page', 1))
        except (TypeError, ValueError):
            page = 1
        try:
            limit = int(args.get('limit', default_limit))
        except (TypeError, ValueError):
            limit = default_limit
        return max(1, page), min(max_limit, max(1, limit))


class DoctorValidator:
    """Normalization and business rules for doctor payloads"""

    @staticmethod
    def normalize(payload: Dict) -> Dict:
        normalized = dict(payload)
        insurances = payload.get('insurances') or []
        if isinstance(insurances, list):
            normalized['insurances'] = [
                item.lower().strip() for item in insurances
                if isinstance(item, str) and item.strip()
            ]
        number = payload.get('doctor_number')
        normalized['doctor_number'] = number.strip() if isinstance(number, str) and number.strip() else None
        return normalized

    @staticmethod
    def _check_window(window: Any, label: str, required: bool) -> Optional[str]:
        if window is None or window == {}:
            return f"{label} working hours are required" if required else None
        if not isinstance(window, dict):
            return f"{label} working hours must be an object with 'inicio' and 'fim'"

        start, end = window.get('inicio'), window.get('fim')
        if not start or not end:
            return f"{label} working hours are required" if required else None
        if not isinstance(start, str) or not isinstance(end, str) \
                or not _HHMM.match(start) or not _HHMM.match(end):
            return "Working hours must use HH:MM"
        if start >= end:
            return f"{label} hours: start must be before end"
        return None

    @classmethod
    def _check(cls, payload: Dict) -> Optional[str]:
        """Return the first rule violation, or None"""
        name = payload.get('name')
        if not isinstance(name, str) or len(name.strip()) < 3:
            return "Name is required (minimum 3 characters)"

        calendar_id = payload.get('calendar_id')
        if not isinstance(calendar_id, str) or not calendar_id.strip():
            return "calendar_id is required"

        procedures = payload.get('procedures')
        if not isinstance(procedures, list) or len(procedures) < 1:
            return "At least 1 procedure is required"

        for index, procedure in enumerate(procedures, start=1):
            if not isinstance(procedure, dict):
                return f"Procedure {index}: invalid entry"
            nome = procedure.get('nome')
            if not isinstance(nome, str) or not nome.strip():
                return f"Procedure {index}: name is required"

            duration = procedure.get('duracao_minutos')
            if isinstance(duration, bool) or not isinstance(duration, (int, float)) \
                    or int(duration) != duration or duration < MIN_PROCEDURE_MINUTES:
                return f"Procedure {index}: minimum duration is {MIN_PROCEDURE_MINUTES} minutes"

            price = procedure.get('preco')
            if price != PRICE_TO_NEGOTIATE and (
                isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0
            ):
                return f"Procedure {index}: invalid price"

        weekdays = payload.get('available_weekdays')
        if not isinstance(weekdays, list) or len(weekdays) < 1:
            return "Select at least 1 weekday"
        if any(isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6 for day in weekdays):
            return "Weekdays must be integers from 0 (Sunday) to 6 (Saturday)"

        working_hours = payload.get('working_hours') or {}
        if not isinstance(working_hours, dict):
            return "working_hours must be an object with 'manha' and optional 'tarde'"
        error = cls._check_window(working_hours.get('manha'), 'Morning', required=True) \
            or cls._check_window(working_hours.get('tarde'), 'Afternoon', required=False)
        if error:
            return error

        if not isinstance(payload.get('insurances'), list):
            return "insurances must be a list"

        digits = re.sub(r'\D', '', payload.get('doctor_number') or '')
        if digits and not 10 <= len(digits) <= 13:
            return "WhatsApp number must have between 10 and 13 digits"

        return None

    @classmethod
    def validate(cls, payload: Any) -> Dict:
        """Normalize then validate; raises UnprocessableError (422)"""
        if not isinstance(payload, dict):
            raise UnprocessableError("Request body is required")

        normalized = cls.normalize(payload)
        error = cls._check(normalized)
        if error:
            raise UnprocessableError(error)

        for procedure in normalized['procedures']:
            procedure['duracao_minutos'] = int(procedure['duracao_minutos'])
        return normalized
