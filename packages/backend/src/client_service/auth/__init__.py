"""Authentication gate.

Learn: Two ways in, both resolved before any service code runs:
1. Tenant applications → shared secret in the x-api-key header
2. End users of the provider mode → Bearer token issued by the
   third-party identity provider, verified with PyJWT

Bearer auth resolves to a CurrentIdentity (subject + optional org claim).
"""
