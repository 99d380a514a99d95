from aiogram.fsm.state import State, StatesGroup


class SignUpStates(StatesGroup):
    """FSM for account creation."""
    choose_role      = State()   # Inline: self-service role
    enter_first_name = State()
    enter_last_name  = State()
    enter_email      = State()
    enter_password   = State()   # Min PASSWORD_MIN_LENGTH characters
    confirm_password = State()


class LoginStates(StatesGroup):
    """FSM for e-mail/password sign-in."""
    enter_email    = State()
    enter_password = State()
