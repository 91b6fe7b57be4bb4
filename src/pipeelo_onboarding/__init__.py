"""
Pipeelo Onboarding

Multi-step tenant onboarding: remote account provisioning, API keys, ERP
integration, AI assistants, advanced settings and deployment, with progress
persisted after every step so the flow can be resumed.
"""

__version__ = "0.1.0"
