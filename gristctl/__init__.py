"""gristctl: SCIM 2.0 Bulk provisioning for Grist.

To process an envelope:
    from gristctl.core.grist import GristClient
    from gristctl.core.scim_bulk import ScimBulkProcessor

To serve the Bulk endpoint:
    from gristctl.flask_app import create_app
"""
# Note: flask_app is not imported here so the CLI and core library do not
# pull in Flask at import time.
