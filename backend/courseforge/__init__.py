"""CourseForge backend: course authoring, publishing and learner progress."""
