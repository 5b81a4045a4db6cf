from inspect import Parameter
from typing import Any, Dict, List, Type


class Hydrator:
    """Object responsible for casting rows into the caller's model"""

    fallback: Type[object] = dict
    """The model type that will be used if there is none passed in the
    hydrate method"""

    def hydrate_many(
        self, rows: List[Dict[str, Any]], model: Type[object] = Parameter.empty
    ) -> List[Any]:
        return [self.hydrate(row, model=model) for row in rows]

    def hydrate(
        self, data: Dict[str, Any], model: Type[object] = Parameter.empty
    ):
        """Perform casting operation

        Args:
            data (Dict[str, Any]): A single row from the driver
            model (Type[object], optional): The model that will do the
                casting. If no value is passed, it will use whatever the
                Hydrator's fallback value is set to. Defaults to
                `Parameter.empty`.

        Returns:
            Any: The row cast into the model
        """
        if model is Parameter.empty or model is None:
            model = self.fallback
        if model in (str, int, float, bool):
            return model(*data.values())
        if model is dict:
            return dict(data)
        return model(**data)
