"""auth/ -- Credential and token lifecycle for Habit.

Layer rule: auth/ imports only stdlib + third-party libraries (and core/ for
type hints). It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
