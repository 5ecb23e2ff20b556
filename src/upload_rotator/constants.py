# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Default values and endpoint constants for the upload pipeline.
"""

# =============================================================================
# ENDPOINTS
# =============================================================================

QUOTA_URL = "https://publish.roblox.com/v1/asset-quotas"
ASSETS_URL = "https://apis.roblox.com/assets/v1/assets"
OPERATIONS_URL = "https://apis.roblox.com/assets/v1/operations"

QUOTA_RESOURCE_TYPE = "RateLimitUpload"
ASSET_TYPE = "Audio"
USER_AGENT = "RobloxOpenCloud/1.0"

DEFAULT_DESCRIPTION = "Uploaded via Discord Bot"

# Media type prefix accepted for upload
ACCEPTED_MEDIA_PREFIX = "audio"

# =============================================================================
# RETRY / POLLING
# =============================================================================

DEFAULT_MAX_RETRY = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 2.0
DEFAULT_POLL_INTERVAL_SECONDS = 4.0

# Upper bound for a single operation; None disables the deadline
DEFAULT_POLL_TIMEOUT_SECONDS = 600.0

DEFAULT_HTTP_TIMEOUT_SECONDS = 60.0

# =============================================================================
# QUOTA CACHE
# =============================================================================

# Upload quota resets monthly; snapshots are trusted for 30 days
DEFAULT_QUOTA_CACHE_SECONDS = 30 * 24 * 60 * 60

# Local decrements before a credential's snapshot is re-probed (0 = never)
DEFAULT_RECONCILE_AFTER = 10
