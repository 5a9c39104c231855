"""auth/ -- Account, verification, and session lifecycle for AuthKeeper.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
