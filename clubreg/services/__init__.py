from clubreg.services.event_stream import SessionEventStream, Subscription
from clubreg.services.auth_backend import (
    AuthBackend, AuthBackendError, SqlAuthBackend,
    hash_password, make_password, verify_password, normalize_email,
)
from clubreg.services.profile_store import (
    ProfileStore, ProfileStoreError, ProfileExistsError, SqlProfileStore,
)
from clubreg.services.registration_service import (
    count_profiles,
    add_participant, ensure_account_holder, get_participant,
    list_participants, count_participants, count_participants_for,
    PROGRAM_FIELDS, create_program, update_program, get_program, list_programs,
    set_program_active, count_taken_seats,
    list_program_questions, add_program_question, delete_program_question, check_answers,
    check_eligibility, register_for_program, get_registration, list_registrations_for_profile,
    list_registrations, update_registration_status, registration_stats,
)

__all__ = [
    # session change stream
    "SessionEventStream", "Subscription",
    # auth backend
    "AuthBackend", "AuthBackendError", "SqlAuthBackend",
    "hash_password", "make_password", "verify_password", "normalize_email",
    # profile store
    "ProfileStore", "ProfileStoreError", "ProfileExistsError", "SqlProfileStore",
    # registration CRUD
    "count_profiles",
    "add_participant", "ensure_account_holder", "get_participant",
    "list_participants", "count_participants", "count_participants_for",
    "PROGRAM_FIELDS", "create_program", "update_program", "get_program", "list_programs",
    "set_program_active", "count_taken_seats",
    "list_program_questions", "add_program_question", "delete_program_question", "check_answers",
    "check_eligibility", "register_for_program", "get_registration", "list_registrations_for_profile",
    "list_registrations", "update_registration_status", "registration_stats",
]
