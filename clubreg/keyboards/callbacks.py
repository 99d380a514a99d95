"""
Centralized CallbackData factories.
Telegram limits callback_data to 64 bytes — all prefixes are kept short.
"""
from aiogram.filters.callback_data import CallbackData


class NavCb(CallbackData, prefix="nav"):
    path: str             # route path, e.g. /programs/3/register


class ProgramCb(CallbackData, prefix="prg"):
    action: str           # view | toggle
    pid: int = 0          # program id


class ParticipantCb(CallbackData, prefix="par"):
    action: str           # view | pick
    pid: int = 0          # participant id
    prg: int = 0          # program id (pick)


class RegistrationCb(CallbackData, prefix="reg"):
    action: str           # view | confirm | cancel | withdraw
    rid: int = 0          # registration id


class RegFilterCb(CallbackData, prefix="rgf"):
    status: str = ""      # "" = all statuses


class RoleCb(CallbackData, prefix="role"):
    role: str


class GenderCb(CallbackData, prefix="gen"):
    gender: str


class FormCb(CallbackData, prefix="frm"):
    action: str           # cancel | skip | confirm | edit


class AnswerCb(CallbackData, prefix="ans"):
    value: str            # option index (select) | yes | no (checkbox)


class ProgramEditCb(CallbackData, prefix="pre"):
    pid: int              # program id
    field: str            # Program column name


class QuestionCb(CallbackData, prefix="q"):
    action: str           # add | del | kind | req
    pid: int = 0          # program id
    qid: int = 0          # question id (del)
    value: str = ""       # kind name | 1 / 0 (req)
