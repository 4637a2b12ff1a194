from .user import User, UserRole
from .project import Project, ProjectStatus, MilestoneTemplate, DeliverableTemplate
from .bid import Bid, BidStatus, Assignment
from .milestone import Milestone, MilestoneStatus, SubmissionNotes, SubmittedDeliverable
from .review import Review
from .notification import Notification, NotificationRead, NotificationType, Message

__all__ = [
    "User", "UserRole",
    "Project", "ProjectStatus", "MilestoneTemplate", "DeliverableTemplate",
    "Bid", "BidStatus", "Assignment",
    "Milestone", "MilestoneStatus", "SubmissionNotes", "SubmittedDeliverable",
    "Review",
    "Notification", "NotificationRead", "NotificationType", "Message",
]
