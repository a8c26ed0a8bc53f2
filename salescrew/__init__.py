"""Sales Crew - AI lead generation, CRM pipeline and sales call rehearsal."""

__version__ = "1.0.0"
