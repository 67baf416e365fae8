"""
credential_service package

Core backend of the credential-issuance microservice:

- FastAPI application factory (`main.py`) and routers (`routes/`)
- SQLAlchemy models, engine and credential store (`models.py`, `db.py`, `store.py`)
- Password hashing and JWT issuance (`auth.py`)
- Register / Login orchestration (`service.py`)
- Pydantic schemas and settings (`schemas.py`, `config.py`)
"""
