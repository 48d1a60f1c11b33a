# clinic_admin/utils/exceptions.py
"""
Custom exceptions for the clinic admin backend
"""

class ClinicAdminError(Exception):
    """Base exception for the application"""
    status_code = 500

class ConfigurationError(ClinicAdminError):
    """Raised when configuration is invalid or missing"""
    pass

class ValidationError(ClinicAdminError):
    """Raised when input validation fails"""
    status_code = 400

class UnprocessableError(ValidationError):
    """Raised when a payload is well-formed but violates business rules"""
    status_code = 422

class NotFoundError(ClinicAdminError):
    """Raised when a requested record does not exist"""
    status_code = 404

class ConflictError(ClinicAdminError):
    """Raised when the request conflicts with current state"""
    status_code = 409

class CalendarServiceError(ClinicAdminError):
    """Raised when calendar operations fail"""
    pass

class CalendarEventNotFound(CalendarServiceError):
    """Raised when the calendar reports an event as missing or already deleted"""
    status_code = 404

class MessagingServiceError(ClinicAdminError):
    """Raised when WhatsApp delivery fails"""
    pass

class ReminderServiceError(ClinicAdminError):
    """Raised when the reminder scheduler rejects a request"""
    pass

class EmbeddingServiceError(ClinicAdminError):
    """Raised when embedding generation fails"""
    pass

class StorageError(ClinicAdminError):
    """Raised when a media file cannot be stored or removed"""
    pass
