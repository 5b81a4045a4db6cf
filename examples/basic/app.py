import asyncio
from dataclasses import dataclass
from typing import List

from sqlwork import UnitOfWork, create_interface


@dataclass
class City:
    id: int
    name: str
    population: int


class NotEnoughPeople(Exception): ...


async def move_people(
    uow: UnitOfWork, source: int, target: int, count: int
) -> int:
    city = await uow.get(City, "SELECT * FROM city WHERE id = $1", source)
    if city.population < count:
        raise NotEnoughPeople(city.name)
    await uow.execute(
        "UPDATE city SET population = population - $1 WHERE id = $2",
        count,
        source,
    )
    await uow.execute(
        "UPDATE city SET population = population + $1 WHERE id = $2",
        count,
        target,
    )
    return count


async def run():
    async with create_interface(db_path=":memory:") as connection:
        uow = UnitOfWork(connection)
        await uow.execute(
            "CREATE TABLE city (id INTEGER PRIMARY KEY, name TEXT, "
            "population INTEGER)"
        )
        for name, population in (("Haifa", 100), ("Akko", 20)):
            result = await uow.execute_named(
                "INSERT INTO city (name, population) "
                "VALUES ($name, $population)",
                {"name": name, "population": population},
            )
            result.raise_for_error()

        await uow.in_transaction(lambda inner: move_people(inner, 1, 2, 30))
        try:
            await uow.in_transaction(
                lambda inner: move_people(inner, 2, 1, 500)
            )
        except NotEnoughPeople as e:
            print(f"Rolled back, not enough people in {e}")

        cities: List[City] = await uow.select(
            City, "SELECT * FROM city ORDER BY id"
        )
        print(cities)


asyncio.run(run())
