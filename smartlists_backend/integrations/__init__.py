"""
External list integrations (MDBList, IMDb, TMDb, Trakt).

New external list adapters should live under this namespace and implement the
`ExternalListAdapter` protocol from `smartlists_backend.integrations.external_list`.
"""
