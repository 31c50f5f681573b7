def snake_to_camel(s):
    parts = s.split("_")
    return "".join([parts[0], *[part.capitalize() for part in parts[1:]]])
