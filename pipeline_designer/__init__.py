"""
pipeline-designer Application Package

Directory Structure:
├── routers/           # FastAPI route handlers (REST + simulation hub websocket)
├── schemas/           # Pydantic models for the wire format
│   └── api_schemas.py # camelCase project/node/connection structures
├── domain/            # Errors, domain events and graph specifications
├── application/       # Project, validation and simulation services
├── db/                # SQLAlchemy models, engine and repositories
├── services/          # Element catalog loaded from resources/
├── infrastructure/    # Client side: REST gateway and progress channel
├── editor/            # Client side: graph model, connection draft, project store
└── config.py          # Application configuration

Two halves live in this package:
1. **Server** (pipeline_designer.main:app): stores project snapshots and runs the
   placeholder simulation, reporting progress over the hub.
2. **Editor core** (pipeline_designer.editor): the state the diagram UI drives. It
   talks to the server only through the gateway and the progress channel.
"""
