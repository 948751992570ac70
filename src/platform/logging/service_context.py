"""
Service context extraction for distributed logging.

Identifies the emitting process so logs from several API replicas
(each running its own reaper) can be told apart.
"""

import os
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'grid-engine')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Container hostnames are short unique ids; fall back to PID locally
    instance = os.getenv('HOSTNAME', '')[:12] or str(os.getpid())

    return f'{service_name}@{deploy_env}:{instance}'
