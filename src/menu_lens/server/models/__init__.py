from menu_lens.server.models.requests import AnalyzeRequest, MatchRequest

__all__ = ["AnalyzeRequest", "MatchRequest"]
