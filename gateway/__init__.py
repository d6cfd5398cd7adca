"""
WhatsApp Gateway control plane.

Runs one connector container per phone number on a fleet of worker nodes:
- Tenant REST API to create, inspect, migrate and delete instances
- Placement on nodes reached through their Docker Engine API
- Proxying of pairing-code and send requests to connector containers
- Durable connector state so sessions survive migration between nodes
- Admin API for nodes and tenants
- Secret management via Vault (OpenBao/HashiCorp) or environment variables
- Registry storage in PostgreSQL
"""

__version__ = "1.0.0"
