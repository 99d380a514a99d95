from aiogram.fsm.state import State, StatesGroup


class AdminProgramStates(StatesGroup):
    """FSM for the program creation wizard."""
    enter_field = State()   # One program field at a time, see PROGRAM_STEPS
    confirm     = State()   # Review + save


class AdminProgramEditStates(StatesGroup):
    """FSM for changing one field of an existing program."""
    enter_value = State()


class AdminQuestionStates(StatesGroup):
    """FSM for adding a custom registration question."""
    enter_label     = State()
    choose_kind     = State()   # Inline: text / select / checkbox
    enter_options   = State()   # Dropdown only, comma separated
    choose_required = State()   # Inline: required / optional
