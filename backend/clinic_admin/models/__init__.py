from clinic_admin.models.appointment import Appointment, BookingRequest
from clinic_admin.models.conversation import ChatMessage, User
from clinic_admin.models.doctor import Doctor
from clinic_admin.models.knowledge import KnowledgeChunk
from clinic_admin.models.media import MediaFile
from clinic_admin.models.usage import TokenUsage

__all__ = [
    'Appointment',
    'BookingRequest',
    'ChatMessage',
    'Doctor',
    'KnowledgeChunk',
    'MediaFile',
    'TokenUsage',
    'User',
]
