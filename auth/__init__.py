"""auth/ -- One-time code login, sessions and token verification.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and the
notify/ sender shape. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
