from .document_model import DocumentModel
from .document_program_catalog import DocumentProgramCatalog
from .sqlalchemy_tenant_store import SqlAlchemyTenantStore

__all__ = ["DocumentModel", "DocumentProgramCatalog", "SqlAlchemyTenantStore"]
