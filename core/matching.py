"""
Client for the external match-percentage service.

The service ranks taskers against a job and jobs against a tasker; this
module only consumes it. Its responses use one envelope::

    {"status": "success", "response": <payload>, "message": "..."}

which is unwrapped here, so callers only ever see the payload or a
MatchingUnavailable error.
"""

import logging

import requests
from django.conf import settings

from .exceptions import MatchingUnavailable

logger = logging.getLogger(__name__)


class MatchingClient:
    """
    HTTP client for the matching service.

    Args:
        base_url: Service root, e.g. 'http://matching:8080/api'. An empty
            value disables the client.
        timeout: Request timeout in seconds
        session: Optional requests.Session (a new one is created otherwise)
    """

    def __init__(self, base_url, timeout=5, session=None):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def enabled(self):
        return bool(self.base_url)

    def _get(self, path, params=None):
        if not self.enabled:
            raise MatchingUnavailable('The matching service is not configured.')

        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
            r.raise_for_status()
            body = r.json()
        except requests.RequestException as e:
            logger.warning(f"Matching service request failed. URL: {url}: {e}")
            raise MatchingUnavailable()
        except ValueError:
            logger.warning(f"Matching service returned invalid JSON. URL: {url}")
            raise MatchingUnavailable('The matching service returned an invalid response.')

        return self._unwrap(body, url)

    def _unwrap(self, body, url):
        if not isinstance(body, dict) or 'status' not in body:
            logger.warning(f"Matching service returned an unexpected body. URL: {url}")
            raise MatchingUnavailable('The matching service returned an invalid response.')

        if body.get('status') != 'success':
            message = body.get('message') or 'The matching service reported an error.'
            logger.warning(f"Matching service error. URL: {url}: {message}")
            raise MatchingUnavailable(message)

        return body.get('response')

    def _ranked(self, payload, key, context):
        matches = []
        for item in payload or []:
            try:
                item_id = int(item[key])
                percentage = float(item['match_percentage'])
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Skipping malformed match entry for {context}: {item!r}")
                continue
            matches.append({**item, key: item_id, 'match_percentage': percentage})

        matches.sort(key=lambda m: m['match_percentage'], reverse=True)
        return matches

    def job_matches(self, job_id):
        """
        Ranked taskers for a job.

        Returns:
            list: dicts with at least tasker_id and match_percentage, sorted
                  by descending match_percentage

        Raises:
            MatchingUnavailable: Service disabled, unreachable or erroring
        """
        payload = self._get(f'jobs/{job_id}/matches')
        return self._ranked(payload, 'tasker_id', f'job {job_id}')

    def tasker_matches(self, tasker_id):
        """
        Ranked jobs for a tasker.

        Returns:
            list: dicts with at least job_id and match_percentage, best first

        Raises:
            MatchingUnavailable: Service disabled, unreachable or erroring
        """
        payload = self._get(f'taskers/{tasker_id}/matches')
        return self._ranked(payload, 'job_id', f'tasker {tasker_id}')

    def match_percentage(self, job_id, tasker_id):
        """
        Match percentage of one tasker for one job.

        Returns:
            float or None: None when the service has no score for the pair
        """
        payload = self._get(f'jobs/{job_id}/matches/{tasker_id}')
        if payload is None:
            return None
        if isinstance(payload, dict):
            payload = payload.get('match_percentage')
        try:
            return float(payload)
        except (TypeError, ValueError):
            return None


def get_matching_client():
    """Build a client from MATCHING_SERVICE_URL and MATCHING_SERVICE_TIMEOUT."""
    return MatchingClient(
        getattr(settings, 'MATCHING_SERVICE_URL', ''),
        timeout=getattr(settings, 'MATCHING_SERVICE_TIMEOUT', 5),
    )


def annotate_applications(job, applications, client=None):
    """
    Attach a ``match_percentage`` attribute to each application and order
    them by it, best match first.

    Scores come from one job_matches() call. If the service is disabled or
    fails, every score is None and the original order is kept.

    Args:
        job: Job the applications belong to
        applications: Iterable of Application
        client: Optional MatchingClient (built from settings otherwise)

    Returns:
        list: The applications, annotated and ordered
    """
    client = client or get_matching_client()

    scores = {}
    if client.enabled:
        try:
            scores = {m['tasker_id']: m['match_percentage'] for m in client.job_matches(job.id)}
        except MatchingUnavailable as e:
            logger.warning(f"Match scores unavailable for job {job.id}: {e.detail}")

    return attach_scores(applications, scores, lambda a: a.tasker_id, order=True)


def annotate_jobs(jobs, tasker, client=None, order=True):
    """
    Attach a ``match_percentage`` attribute to each job for one tasker.

    Scores come from one tasker_matches() call and degrade to None the same
    way annotate_applications() does.

    Args:
        jobs: Iterable of Job
        tasker: Tasker the jobs are scored for
        client: Optional MatchingClient (built from settings otherwise)
        order: Sort best match first (unscored jobs keep their order, last)

    Returns:
        list: The jobs, annotated
    """
    client = client or get_matching_client()

    scores = {}
    if client.enabled:
        try:
            scores = {m['job_id']: m['match_percentage'] for m in client.tasker_matches(tasker.id)}
        except MatchingUnavailable as e:
            logger.warning(f"Match scores unavailable for tasker {tasker.id}: {e.detail}")

    return attach_scores(jobs, scores, lambda j: j.id, order=order)


def attach_scores(items, scores, key, order=True):
    """Set match_percentage on each item from scores keyed by key(item)."""
    items = list(items)
    for item in items:
        item.match_percentage = scores.get(key(item))

    if scores and order:
        items.sort(
            key=lambda i: -i.match_percentage if i.match_percentage is not None else float('inf')
        )
    return items
