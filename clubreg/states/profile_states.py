from aiogram.fsm.state import State, StatesGroup


class CompleteProfileStates(StatesGroup):
    """FSM for the profile completion wizard."""
    enter_full_name   = State()   # "First Last"
    enter_phone       = State()
    enter_street      = State()   # Optional, can be skipped
    enter_city        = State()
    enter_province    = State()   # Two-letter code
    enter_postal_code = State()
    confirm           = State()   # Show summary → save or edit


class ParticipantStates(StatesGroup):
    """FSM for adding a participant (self or dependant)."""
    enter_first_name    = State()
    enter_last_name     = State()
    enter_date_of_birth = State()   # YYYY-MM-DD
    choose_gender       = State()   # Inline: M / F / X


class ProgramRegistrationStates(StatesGroup):
    """FSM for a program's custom questions and waiver."""
    answer_question = State()   # One question at a time
    accept_waiver   = State()   # Only when the program has waiver text
