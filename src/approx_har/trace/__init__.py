from approx_har.trace.runner import CampaignResult, CampaignRunner

__all__ = ["CampaignResult", "CampaignRunner"]
