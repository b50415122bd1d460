from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single configuration parameter a client reads from the environment.

    Attributes:
        env_key (str): Raw key, prefixed by the client as "<TYPE>_<ENGINE>_<KEY>" (e.g. "BASE_URL").
        val_type (str): Expected type of the value: "string", "number", "bool" or "list".
        default (str | int | bool | list | None): Value used when the variable is unset.
            None marks the variable as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
