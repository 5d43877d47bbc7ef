"""
HTTP writer for memory metrics.

Posts each batch as one JSON document to a metrics ingestion endpoint:

    {"namespace": "System/Linux", "metrics": [{...}, {...}, {...}]}
"""

from typing import List, Optional

import requests


class HTTPWriter:
    """Submits metric batches to a remote HTTP endpoint"""

    def __init__(self, endpoint: str, api_token: str, session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {api_token}',
            'Content-Type': 'application/json',
        })

    def submit_batch(self, namespace: str, records: List) -> None:
        """POST a batch; any non-2xx response raises requests.HTTPError"""
        payload = {
            'namespace': namespace,
            'metrics': [r.to_dict() for r in records],
        }
        response = self.session.post(self.endpoint, json=payload)
        response.raise_for_status()

    def close(self):
        self.session.close()
