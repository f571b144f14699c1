"""
Fixed defaults shared by endpoint resolution and leader election.

Values match the resource syncer's historical defaults so that a syncer
started without explicit client tuning behaves the same as before.
"""

from datetime import timedelta

# Client defaults applied when neither the caller nor the kubeconfig sets them
DEFAULT_REQUEST_TIMEOUT = timedelta(seconds=30)
DEFAULT_CLIENT_QPS = 10000.0
DEFAULT_CLIENT_BURST = 20000
DEFAULT_CONTENT_TYPE = "application/json"

# User agents
RESOURCE_SYNCER_USER_AGENT = "resource-syncer"
LEADER_ELECTION_USER_AGENT = f"{RESOURCE_SYNCER_USER_AGENT}-leader-election"

# In-cluster runtime files (only present inside a pod)
SERVICE_ACCOUNT_DIR = "/var/run/secrets/kubernetes.io/serviceaccount"
NAMESPACE_FILE = f"{SERVICE_ACCOUNT_DIR}/namespace"

# Leader election
LOCK_NAME_SUFFIX = "syncer-leaderelection-lock"
DEFAULT_LEASE_DURATION = timedelta(seconds=15)
DEFAULT_RENEW_DEADLINE = timedelta(seconds=10)
DEFAULT_RETRY_PERIOD = timedelta(seconds=2)
WATCHDOG_THRESHOLD = timedelta(seconds=20)
JITTER_FACTOR = 1.2
