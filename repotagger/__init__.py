"""repotagger: instance-id tagging for update-site repository locations.

Rewrites the locations of trusted, non-local artifact repositories so their
path carries the installation's instance tag (``/knid=<tag>/``) and keeps
those rewritten locations consistent with the metadata repositories they
came from:

  - Data-driven trust (host allow-list) and tag (regex) predicates
  - Registry, event source and tag provider injected as collaborators
  - In-memory and JSON-file registry adapters
  - Env-driven configuration via pydantic-settings
  - Typer + Rich command line front end
"""

__version__ = "0.1.0"
__description__ = "Instance-id tagging for update-site repository locations"

from repotagger.core.tagger import RepositoryIdentityTagger
from repotagger.models.locations import RepositoryLocation

__all__ = ["RepositoryIdentityTagger", "RepositoryLocation", "__version__"]
