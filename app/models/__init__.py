from app.db.base_class import Base
from app.models.branding import BrandingConfig, DomainStatus
