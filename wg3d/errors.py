class ConvertError(RuntimeError):
    """Something weird happened"""


class MissingAttributes(ConvertError):
    """Primitive missing required attributes"""


class UnsupportedDataType(ConvertError):
    """Accessor using unsupported component type"""


class UnsupportedDimensions(ConvertError):
    """Accessor using unsupported dimensions"""


class CardinalityMismatch(ConvertError):
    """Co-dependent streams of unequal length"""


class MissingBuffer(ConvertError):
    """Referenced buffer is not available"""


class BufferOutOfBounds(MissingBuffer):
    """Referenced byte range is outside of the buffer"""


class MissingImageBuffer(MissingBuffer):
    """Image buffer not present"""


class SkeletonError(ConvertError):
    pass


class NoSkeleton(SkeletonError):
    """No specified root node of skeleton for a skin"""


class UnreachableJoint(SkeletonError):
    """Joint node is not a descendant of the skeleton root"""


class TooManyJoints(SkeletonError):
    """Joint count does not fit the joint index width"""


class InvalidJoint(ConvertError):
    """Animation target is not part of any skeleton"""


class NonUniformScaling(ConvertError):
    """WG3D only supports uniform scaling"""


class UnorderedKeyframes(ConvertError):
    """Keyframe timestamps are not in ascending order"""


class NoDefaultScene(ConvertError):
    """No default scene present"""
