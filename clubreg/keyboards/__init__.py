from clubreg.keyboards.callbacks import (
    NavCb,
    ProgramCb,
    ParticipantCb,
    RegistrationCb,
    RegFilterCb,
    RoleCb,
    GenderCb,
    FormCb,
    AnswerCb,
    ProgramEditCb,
    QuestionCb,
)
from clubreg.keyboards.main_menu import (
    nav_button, guest_menu, member_menu, incomplete_profile_menu, back_kb,
)
from clubreg.keyboards.auth_kb import cancel_kb, skip_kb, confirm_kb, role_kb, gender_kb
from clubreg.keyboards.programs_kb import (
    program_list_kb,
    program_detail_kb,
    participant_pick_kb,
    participants_kb,
    my_registrations_kb,
    question_answer_kb,
    waiver_kb,
)
from clubreg.keyboards.admin_kb import (
    admin_menu_kb,
    admin_programs_kb,
    status_filter_kb,
    admin_registrations_kb,
    registration_admin_kb,
    EDITABLE_FIELDS,
    program_edit_kb,
    questions_kb,
    question_kind_kb,
    question_required_kb,
)

__all__ = [
    # callbacks
    "NavCb", "ProgramCb", "ParticipantCb", "RegistrationCb", "RegFilterCb",
    "RoleCb", "GenderCb", "FormCb", "AnswerCb", "ProgramEditCb", "QuestionCb",
    # main menu
    "nav_button", "guest_menu", "member_menu", "incomplete_profile_menu", "back_kb",
    # forms
    "cancel_kb", "skip_kb", "confirm_kb", "role_kb", "gender_kb",
    # programs / participants
    "program_list_kb", "program_detail_kb", "participant_pick_kb",
    "participants_kb", "my_registrations_kb", "question_answer_kb", "waiver_kb",
    # admin
    "admin_menu_kb", "admin_programs_kb", "status_filter_kb",
    "admin_registrations_kb", "registration_admin_kb",
    "EDITABLE_FIELDS", "program_edit_kb", "questions_kb", "question_kind_kb", "question_required_kb",
]
