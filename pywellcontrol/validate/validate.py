from pywellcontrol.classes import class_dic

def validate_methods(names, variables):
    """ Converts string method names to their Enum members, leaving Enum inputs untouched.
        Raises ValueError when a string does not name a member of the corresponding Enum.
    """
    variables = list(variables)
    for m, method in enumerate(names):
        if type(variables[m]) == str:
            try:
                variables[m] = class_dic[method][variables[m].upper()]
            except KeyError:
                options = [e.name for e in class_dic[method]]
                raise ValueError("An incorrect " + method + " was specified: '" + variables[m] + "'. Options are " + str(options))
    if len(variables) == 1:
        return variables[0]
    else:
        return variables


def validate_positive(**kwargs):
    """ Raises ValueError naming the first keyword argument that is not a positive number """
    for name, val in kwargs.items():
        if val is None or val <= 0:
            raise ValueError(name + " must be positive, got " + str(val))


def validate_non_negative(**kwargs):
    """ Raises ValueError naming the first keyword argument that is negative """
    for name, val in kwargs.items():
        if val is None or val < 0:
            raise ValueError(name + " must not be negative, got " + str(val))
