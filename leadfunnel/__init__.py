"""
Lead Funnel
===========
Qualification questionnaire for landing-page traffic:
wizard state machine, autosave, disqualification and CRM handoff.
"""

__version__ = "1.0.0"
