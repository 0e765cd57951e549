"""auth/ -- Authentication package for the VSS platform.

Credential verification (passwords), token issue/verify (tokens), the bearer
dependency (dependencies) and the user repository (store).

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
