from .state import State, build_state
