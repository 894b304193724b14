"""Core Business Logic Module

Independent of HTTP frameworks (no Flask imports).

Module Structure:
    - grist/         : Low-level Grist REST API client
    - scim_bulk.py   : SCIM 2.0 Bulk envelope processor

Public APIs:
    Bulk (gristctl.core.scim_bulk):
        - ScimBulkProcessor.process()
        - ScimBulkProcessor.process_text()
        - BulkRequest, BulkOperation, BulkResponse, BulkOperationResult
        - ScimError, EnvelopeError, OperationValidationError

    Grist Client (gristctl.core.grist):
        - GristClient (bearer-authenticated HTTP transport)
        - GristError, GristAPIError, GristConnectionError
"""
