"""
Marketplace Kernel

Project lifecycle and proposal resolution for a renovation marketplace:
- Draft / publish / unpublish of customer projects
- Fan-out of invitations to providers offering the project's category
- Budget-checked proposal submission and the acceptance cascade
- Milestone ledger capped at 100% of the payment
"""

__version__ = "0.1.0"
