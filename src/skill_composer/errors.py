"""Exceptions raised by the registry and query pipeline."""


class SkillComposerError(Exception):
	"""Base class for skill-composer errors."""
	pass


class RegistryError(SkillComposerError):
	"""Raised when bundle definitions are structurally invalid at load time."""
	pass


class NotFoundError(SkillComposerError):
	"""Raised when a bundle or sub-document id does not exist in the snapshot."""
	pass
