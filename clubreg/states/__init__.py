from clubreg.states.auth_states import LoginStates, SignUpStates
from clubreg.states.profile_states import CompleteProfileStates, ParticipantStates, ProgramRegistrationStates
from clubreg.states.admin_states import AdminProgramStates, AdminProgramEditStates, AdminQuestionStates

__all__ = [
    "LoginStates", "SignUpStates",
    "CompleteProfileStates", "ParticipantStates", "ProgramRegistrationStates",
    "AdminProgramStates", "AdminProgramEditStates", "AdminQuestionStates",
]
