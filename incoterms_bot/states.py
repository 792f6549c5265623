"""FSM states for the Incoterms wizard."""

from aiogram.fsm.state import State, StatesGroup


class WizardForm(StatesGroup):
    transport        = State()   # step 1: sea / road / rail / air
    responsibilities = State()   # step 2: five seller/buyer answers
    result           = State()   # step 3: recommendation + contact
