"""Initial registry schema: tenants, nodes, instances, instance state.

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE provider AS ENUM ('whatsmeow', 'baileys', 'wawebjs', 'waba');
        EXCEPTION WHEN duplicate_object THEN NULL;
        END $$
    """)
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE status AS ENUM ('creating', 'starting', 'running', 'stopped', 'error', 'migrating');
        EXCEPTION WHEN duplicate_object THEN NULL;
        END $$
    """)

    # Tenants
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            email VARCHAR(256) NOT NULL UNIQUE,
            api_key TEXT NOT NULL UNIQUE,
            created_at TIMESTAMP NOT NULL DEFAULT now()
        )
    """)

    # Worker nodes
    op.execute("""
        CREATE TABLE IF NOT EXISTS nodes (
            id SERIAL PRIMARY KEY,
            name VARCHAR(256) NOT NULL UNIQUE,
            docker_host TEXT NOT NULL,
            public_host TEXT NOT NULL
        )
    """)

    # Instances: a node with instances cannot be deleted, a tenant takes its instances with it
    op.execute("""
        CREATE TABLE IF NOT EXISTS instances (
            id SERIAL PRIMARY KEY,
            node_id INTEGER NOT NULL REFERENCES nodes(id) ON DELETE RESTRICT,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name VARCHAR(256),
            phone_number VARCHAR(20) NOT NULL,
            provider provider NOT NULL,
            webhook_url TEXT,
            status status NOT NULL DEFAULT 'creating',
            cpu_limit VARCHAR(10) DEFAULT '0.5',
            memory_limit VARCHAR(10) DEFAULT '512m',
            created_at TIMESTAMP NOT NULL DEFAULT now()
        )
    """)

    # Connector state blobs
    op.execute("""
        CREATE TABLE IF NOT EXISTS instance_state (
            id SERIAL PRIMARY KEY,
            instance_id INTEGER NOT NULL REFERENCES instances(id) ON DELETE CASCADE,
            key VARCHAR(255) NOT NULL,
            value BYTEA NOT NULL,
            CONSTRAINT instance_key_idx UNIQUE (instance_id, key)
        )
    """)

    # Indexes
    op.execute("CREATE UNIQUE INDEX IF NOT EXISTS user_phone_idx ON instances(user_id, phone_number)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_instances_node ON instances(node_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_instances_status ON instances(status)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS instance_state")
    op.execute("DROP TABLE IF EXISTS instances")
    op.execute("DROP TABLE IF EXISTS nodes")
    op.execute("DROP TABLE IF EXISTS users")
    op.execute("DROP TYPE IF EXISTS status")
    op.execute("DROP TYPE IF EXISTS provider")
