from .base import Base

# Reference data
from .user import User
from .exam_type import ExamType
from .subject import Subject
from .topic import Topic, TopicPrerequisite, PrerequisiteStrength
from .learning_objective import LearningObjective, ObjectiveProgress

# Per-student records
from .topic_knowledge import TopicKnowledge
from .study_log import DailyStudy, TopicReview
from .exam import Exam, ExamWrongQuestion, ExamSubjectResult
from .student_profile import StudentProfile
from .spaced_repetition import SpacedRepetitionItem, ReviewStatus

# Planning
from .weekly_plan import WeeklyPlan, WeeklyPlanItem
