"""
Permission template lookup, run before any bulk work starts.
"""

import logging

from sq_permissions.exceptions import NotFoundError
from .sonarqube_client import SonarQubeClient

logger = logging.getLogger(__name__)


async def resolve_permission_template(client: SonarQubeClient, template_id: str) -> str:
    """
    Check that template_id names an existing permission template.

    Both custom and default templates are considered.

    Returns:
        The validated template id

    Raises:
        NotFoundError: if no template carries exactly that id
    """
    search = await client.search_permission_templates(template_id)
    if template_id not in search.template_ids():
        raise NotFoundError(f"Permission template with id {template_id}")

    logger.info(f"Permission template {template_id} found")
    return template_id
