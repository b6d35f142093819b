from app.members.service import MemberService

__all__ = ["MemberService"]
