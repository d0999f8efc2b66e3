from .presentations import router as presentations
from .share_links import router as share_links
from .sharing import router as sharing
